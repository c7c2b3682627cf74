# dep/modules/manager.py
"""
manager.py - contexto explícito de uma configuração em execução.

Reúne o grafo, o agendador de fases, o motor de sync e a limpeza. Várias
instâncias independentes podem coexistir (útil em testes).
"""

from __future__ import annotations
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, List, Optional

from dep.modules import logger as _logger
from dep.modules.clean import Cleaner, CleanResult
from dep.modules.config import config
from dep.modules.graph import DependencyGraph, SpecError
from dep.modules.hooks import HookManager
from dep.modules.package import DepError, Package
from dep.modules.scheduler import PhaseScheduler, add_to_sys_path
from dep.modules.specfile import normalize, split_options
from dep.modules.sync import SyncManager, SyncSummary
from dep.modules.vcs import GitRunner

SYNC_MODES = ("new", "always")


class ManagerError(DepError):
    pass


class DepManager:
    def __init__(self,
                 base_dir: Optional[str] = None,
                 sync_mode: Optional[str] = None,
                 concurrency: Optional[int] = None,
                 root_id: Optional[str] = None,
                 runner: Optional[GitRunner] = None,
                 activator: Optional[Callable[[Package], None]] = add_to_sys_path,
                 logger: Optional[_logger.Logger] = None):
        self.log = logger or _logger.Logger("dep")
        self.base_dir = base_dir
        self.sync_mode = sync_mode
        self.concurrency = concurrency or config.concurrency
        self.root_id = root_id or config.root_id
        self.runner = runner or GitRunner(timeout=config.git_timeout, logger=self.log)
        self.activator = activator

        self.initialized = False
        self.perf: Dict[str, float] = {}
        self.graph: Optional[DependencyGraph] = None
        self.scheduler: Optional[PhaseScheduler] = None
        self.cleaner: Optional[Cleaner] = None
        self.syncer: Optional[SyncManager] = None

    # ---------------------------------------------------
    # Inicialização
    # ---------------------------------------------------
    def setup(self, specs: Any, sync: bool = True) -> Optional[SyncSummary]:
        """
        Monta o grafo a partir das specs, valida (ciclos), propaga configure/load
        e sincroniza os pacotes escolhidos pelo modo de sync.

        Erros de spec e de ciclo são fatais: registrados e relançados, sem grafo parcial.
        """
        self.initialized = False
        try:
            options, spec_list = split_options(normalize(specs, "<specs>"))
            base_dir = options.get("base_dir") or self.base_dir or config.base_dir
            sync_mode = options.get("sync") or self.sync_mode or config.sync_mode
            if sync_mode not in SYNC_MODES:
                raise SpecError(f"sync must be one of {', '.join(SYNC_MODES)} (got {sync_mode!r})")

            start = time.perf_counter()
            graph = DependencyGraph(base_dir, logger=self.log)
            graph.set_root(self.root_id)
            graph.add_specs(spec_list)
            graph.finalize()
            self.perf["build"] = time.perf_counter() - start
        except DepError as e:
            self.log.stage("error", str(e))
            raise

        self.graph = graph
        self.sync_mode = sync_mode
        self.scheduler = PhaseScheduler(graph, hooks=HookManager(logger=self.log),
                                        activator=self.activator, logger=self.log)
        self.cleaner = Cleaner(graph, concurrency=self.concurrency, logger=self.log)
        self.syncer = SyncManager(graph, self.scheduler, cleaner=self.cleaner, runner=self.runner,
                                  concurrency=self.concurrency, logger=self.log)
        self.initialized = True

        start = time.perf_counter()
        self.scheduler.reload()
        self.perf["propagate"] = time.perf_counter() - start

        if not sync:
            return None
        return self.syncer.sync_list([p for p in graph if self._should_sync(p)])

    def _should_sync(self, package: Package) -> bool:
        if self.sync_mode == "always":
            return True
        return not package.exists

    def _require_initialized(self, name: str):
        if not self.initialized:
            raise ManagerError(f"cannot call {name}; dep is not initialized")

    # ---------------------------------------------------
    # API
    # ---------------------------------------------------
    @property
    def root(self) -> Package:
        self._require_initialized("root")
        return self.graph.root

    @property
    def packages(self) -> List[Package]:
        self._require_initialized("packages")
        return list(self.graph)

    def get(self, id: str) -> Optional[Package]:
        self._require_initialized("get")
        return self.graph.get(id)

    def sync(self) -> SyncSummary:
        self._require_initialized("sync")
        return self.syncer.sync_list(self.graph)

    def reload(self) -> bool:
        self._require_initialized("reload")
        return self.scheduler.reload_all()

    def clean(self) -> CleanResult:
        self._require_initialized("clean")
        return self.cleaner.clean()

    def commits(self) -> Dict[str, str]:
        """Revisão atual (HEAD curto) de cada pacote instalado."""
        self._require_initialized("commits")
        targets = [p for p in self.graph if p.exists and not p.root]
        results: Dict[str, str] = {}
        if not targets:
            return results

        with ThreadPoolExecutor(max_workers=self.concurrency) as ex:
            futures = {ex.submit(self.runner.rev_parse, p.dir, "HEAD"): p for p in targets}
            for future in as_completed(futures):
                package = futures[future]
                res = future.result()
                if res.ok:
                    package.revision = res.output.strip()
                    results[package.id] = package.revision
        return results

    def status(self) -> List[Dict[str, Any]]:
        """Estado de cada pacote para relatórios (sem rederivar o grafo)."""
        self._require_initialized("status")
        return [p.to_dict() for p in self.graph]
