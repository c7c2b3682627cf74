# dep/modules/scheduler.py
"""
scheduler.py - propagação das fases "configure" e "load" pelo grafo.

Cada fase é uma varredura recursiva a partir da raiz. Um nó só executa a fase
depois que todas as suas dependências a completaram; nós cujas dependências
ainda não terminaram são pulados e revisitados quando a última dependência
completa e desce até eles. As flags subtree_* memorizam subárvores prontas,
então um grafo em diamante é visitado uma vez por fase.
"""

from __future__ import annotations
import importlib
import sys
import time
from typing import Callable, Optional

from dep.modules import logger as _logger
from dep.modules.graph import DependencyGraph
from dep.modules.hooks import HookError, HookManager
from dep.modules.package import DepError, Package


class ActivationError(DepError):
    pass


def add_to_sys_path(package: Package):
    """Ativador padrão: coloca o clone do pacote no sys.path."""
    if package.dir not in sys.path:
        sys.path.insert(0, package.dir)


class PhaseScheduler:
    def __init__(self, graph: DependencyGraph,
                 hooks: Optional[HookManager] = None,
                 activator: Optional[Callable[[Package], None]] = add_to_sys_path,
                 logger: Optional[_logger.Logger] = None):
        self.graph = graph
        self.log = logger or _logger.Logger("scheduler")
        self.hooks = hooks or HookManager(logger=self.log)
        self.activator = activator

    # ---------------------------------------------------
    # Ativação
    # ---------------------------------------------------
    def ensure_added(self, package: Package):
        """Executa os hooks de setup e ativa o pacote, uma vez por invalidação."""
        if package.added:
            return

        self.hooks.run_hooks(package, "setup")

        start = time.perf_counter()
        if self.activator is not None and not package.root:
            try:
                self.activator(package)
            except Exception as e:
                package.error = True
                raise ActivationError(f"failed to activate {package.id}: {e}") from e

        package.added = True
        package.perf["activate"] = time.perf_counter() - start
        self.log.stage("activate", f"activated {package.id}")

    def _runnable(self, package: Package) -> bool:
        return package.exists and package.enabled and not package.error

    # ---------------------------------------------------
    # Fases
    # ---------------------------------------------------
    def configure(self, package: Package) -> bool:
        if not self._runnable(package):
            return False

        if package.subtree_configured:
            return True

        for dependency in self.graph.dependencies_of(package):
            if not dependency.configured:
                return False

        if not package.configured:
            try:
                self.ensure_added(package)
                self.hooks.run_hooks(package, "config")
            except (HookError, ActivationError) as e:
                package.error = True
                self.log.stage("error", f"failed to configure {package.id}; reason: {e}")
                return False

            package.configured = True
            self.log.stage("config", f"configured {package.id}")

        package.subtree_configured = True
        for dependent in self.graph.dependents_of(package):
            done = self.configure(dependent)
            package.subtree_configured = done and package.subtree_configured

        return package.subtree_configured

    def load(self, package: Package) -> bool:
        if not self._runnable(package):
            return False

        if package.subtree_loaded:
            return True

        for dependency in self.graph.dependencies_of(package):
            if not dependency.loaded:
                return False

        if not package.loaded:
            try:
                self.ensure_added(package)
                self.hooks.run_hooks(package, "load")
            except (HookError, ActivationError) as e:
                package.error = True
                self.log.stage("error", f"failed to load {package.id}; reason: {e}")
                return False

            package.loaded = True
            self.log.stage("load", f"loaded {package.id}")

        package.subtree_loaded = True
        for dependent in self.graph.dependents_of(package):
            done = self.load(dependent)
            package.subtree_loaded = done and package.subtree_loaded

        return package.subtree_loaded

    # ---------------------------------------------------
    # Recarga / invalidação
    # ---------------------------------------------------
    def reload(self) -> bool:
        """Limpa os erros (nova tentativa) e propaga configure + load a partir da raiz."""
        for package in self.graph:
            package.error = False

        root = self.graph.root
        configured = self.configure(root)
        loaded = self.load(root)
        reloaded = configured or loaded

        if reloaded:
            importlib.invalidate_caches()

        return reloaded

    def reload_all(self) -> bool:
        for package in self.graph:
            package.loaded = False
            package.subtree_loaded = False
        return self.reload()

    def invalidate(self, package: Package):
        """
        Volta para 'pending' o pacote, tudo de que ele depende e tudo que depende dele.
        A ativação só é refeita para o pacote e seus dependentes.
        """
        for node in self.graph.dependency_closure(package):
            node.reset_flags()
        for node in self.graph.dependent_closure(package):
            node.reset_flags()
            node.added = False
