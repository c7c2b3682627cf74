# dep/modules/vcs.py
"""
vcs.py - execução dos comandos git usados na sincronização.

Quatro formas de comando: rev-parse curto, clone raso com submódulos,
fetch raso com submódulos e reset --hard (submódulos incluídos).
Prompts de credencial são sempre desabilitados (GIT_TERMINAL_PROMPT=0).
"""

from __future__ import annotations
import os
import subprocess
from typing import List, Optional

from dep.modules import logger as _logger

GIT_ENV = {"GIT_TERMINAL_PROMPT": "0"}


class ProcResult:
    """Status de saída e saída combinada (stdout+stderr) de um comando."""

    def __init__(self, code: int, output: str):
        self.code = code
        self.output = output

    @property
    def ok(self) -> bool:
        return self.code == 0

    def __repr__(self):
        return f"ProcResult(code={self.code!r}, output={self.output!r})"


class GitRunner:
    def __init__(self, git: str = "git", timeout: Optional[float] = None,
                 logger: Optional[_logger.Logger] = None):
        self.git = git
        self.timeout = timeout
        self.log = logger or _logger.Logger("vcs")

    def exec(self, args: List[str], cwd: Optional[str] = None) -> ProcResult:
        cmd = [self.git] + list(args)
        env = os.environ.copy()
        env.update(GIT_ENV)
        try:
            res = subprocess.run(cmd, cwd=cwd, env=env,
                                 stdin=subprocess.DEVNULL,
                                 stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
                                 text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            result = ProcResult(-1, f"timed out after {self.timeout}s")
        except OSError as e:
            result = ProcResult(-1, str(e))
        else:
            output = res.stdout or ""
            if output.endswith("\n"):
                output = output[:-1]
            result = ProcResult(res.returncode, output)

        self.log.debug(f'executed `{self.git}` (code={result.code}, cwd={cwd}) with args: "'
                       + '", "'.join(args) + f'"\n{result.output}')
        return result

    def rev_parse(self, directory: str, ref: str) -> ProcResult:
        return self.exec(["rev-parse", "--short", ref], cwd=directory)

    def clone(self, directory: str, url: str, branch: Optional[str] = None) -> ProcResult:
        args = ["clone", "--depth=1", "--recurse-submodules", "--shallow-submodules", url, directory]
        if branch:
            args.append(f"--branch={branch}")
        return self.exec(args)

    def fetch(self, directory: str, remote: str, refspec: str) -> ProcResult:
        return self.exec(["fetch", "--depth=1", "--recurse-submodules", remote, refspec], cwd=directory)

    def reset(self, directory: str, treeish: str) -> ProcResult:
        return self.exec(["reset", "--hard", "--recurse-submodules", treeish, "--"], cwd=directory)
