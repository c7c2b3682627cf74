# dep/modules/hooks.py
import os
import subprocess
import time
from typing import Optional

from dep.modules import logger as _logger
from dep.modules.package import DepError, Hook, Package, STAGES


class HookError(DepError):
    def __init__(self, package_id: str, stage: str, cause: BaseException):
        self.package_id = package_id
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage} hook failed for {package_id}: {cause}")


class HookManager:
    """
    Executa os hooks de um pacote para um estágio (setup, config, load).
    - Hooks podem ser:
        • Funções Python sem argumentos
        • Comandos shell (string)
    - O diretório de trabalho é trocado para o clone do pacote durante a execução
      e restaurado sempre, mesmo em caso de falha.
    - A primeira falha interrompe a lista e marca o pacote com erro.
    """

    def __init__(self, logger: Optional[_logger.Logger] = None):
        self.log = logger or _logger.Logger("hooks")

    # ---------------------------------------------------
    # Execução
    # ---------------------------------------------------
    def run_hooks(self, package: Package, stage: str):
        if stage not in STAGES:
            raise ValueError(f"unknown hook stage: {stage}")

        hooks = package.hooks[stage]
        if not hooks:
            return

        start = time.perf_counter()
        last_cwd = os.getcwd()
        try:
            # a raiz não tem clone próprio; seus hooks rodam no diretório atual
            if not package.root:
                os.chdir(package.dir)
            for hook in hooks:
                self._execute_hook(hook)
        except Exception as e:
            package.error = True
            raise HookError(package.id, stage, e) from e
        finally:
            os.chdir(last_cwd)

        package.perf[stage] = time.perf_counter() - start
        self.log.stage("hook", f"triggered {len(hooks)} {stage} {'hook' if len(hooks) == 1 else 'hooks'} "
                               f"for {package.id}")

    # ---------------------------------------------------
    # Execução de tipos de hook
    # ---------------------------------------------------
    def _execute_hook(self, hook: Hook):
        """Executa hook que pode ser string (comando) ou função"""
        if callable(hook):
            hook()
            return
        self._execute_command(hook)

    def _execute_command(self, command: str):
        """Executa um comando shell no diretório atual (o clone do pacote)"""
        self.log.debug(f"running hook command: {command}")
        subprocess.run(command, shell=True, check=True)
