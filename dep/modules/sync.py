# dep/modules/sync.py
"""
sync.py - instalação/atualização dos clones git de todos os pacotes.

- Uma máquina de estados por pacote: disabled, pinned, install (clone) ou
  update (rev-parse -> fetch -> rev-parse -> reset --hard).
- Todas as sincronizações rodam em paralelo (ThreadPoolExecutor); os workers só
  enxergam um SyncJob imutável e devolvem um SyncResult.
- O grafo só é alterado na thread chamadora, ao consumir os resultados.
- Barreira: quando todos os pacotes terminam, roda a limpeza e uma propagação
  completa (configure + load) exatamente uma vez e registra um resumo.
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, List, Optional

from dep.modules import logger as _logger
from dep.modules.clean import Cleaner, CleanResult
from dep.modules.graph import DependencyGraph
from dep.modules.package import DepError, Package
from dep.modules.scheduler import PhaseScheduler
from dep.modules.vcs import GitRunner, ProcResult

DISABLED = "disabled"
PINNED = "pinned"
INSTALLED = "installed"
UPDATED = "updated"
SKIPPED = "skipped"
FAILED = "failed"


class SyncError(DepError):
    pass


class SyncJob:
    """Cópia imutável dos campos de um pacote necessários para sincronizá-lo."""

    __slots__ = ("package_id", "directory", "url", "branch", "exists", "pin", "enabled")

    def __init__(self, package_id, directory, url, branch=None, exists=False, pin=False, enabled=True):
        self.package_id = package_id
        self.directory = directory
        self.url = url
        self.branch = branch
        self.exists = exists
        self.pin = pin
        self.enabled = enabled

    @classmethod
    def from_package(cls, package: Package) -> "SyncJob":
        return cls(package.id, package.dir, package.url, package.branch,
                   package.exists, package.pin, package.enabled)


class SyncResult:
    def __init__(self, package_id: str, status: str, before: Optional[str] = None,
                 after: Optional[str] = None, message: str = ""):
        self.package_id = package_id
        self.status = status
        self.before = before
        self.after = after
        self.message = message

    @property
    def ok(self) -> bool:
        return self.status != FAILED

    @property
    def changed(self) -> bool:
        return self.status in (INSTALLED, UPDATED)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "package": self.package_id,
            "status": self.status,
            "before": self.before,
            "after": self.after,
            "message": self.message,
        }

    def __repr__(self):
        return f"SyncResult({self.package_id!r}, {self.status!r})"


class SyncSummary:
    def __init__(self, results: Optional[List[SyncResult]] = None):
        self.results: List[SyncResult] = results or []
        self.cleaned: Optional[CleanResult] = None
        self.reloaded = False

    @property
    def has_errors(self) -> bool:
        return any(not r.ok for r in self.results)

    def by_status(self, status: str) -> List[str]:
        return sorted(r.package_id for r in self.results if r.status == status)

    def counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for r in self.results:
            counts[r.status] = counts.get(r.status, 0) + 1
        return counts


class SyncManager:
    def __init__(self, graph: DependencyGraph, scheduler: PhaseScheduler,
                 cleaner: Optional[Cleaner] = None,
                 runner: Optional[GitRunner] = None,
                 concurrency: int = 8,
                 logger: Optional[_logger.Logger] = None):
        self.graph = graph
        self.scheduler = scheduler
        self.log = logger or _logger.Logger("sync")
        self.cleaner = cleaner or Cleaner(graph, concurrency=concurrency, logger=self.log)
        self.runner = runner or GitRunner(logger=self.log)
        self.concurrency = concurrency

    def _run(self, res: ProcResult) -> str:
        if not res.ok:
            raise SyncError(res.output or f"git exited with code {res.code}")
        return res.output.strip()

    # ---------------------------------------------------
    # Máquina de estados (roda no worker)
    # ---------------------------------------------------
    def sync_job(self, job: SyncJob) -> SyncResult:
        if not job.enabled:
            return SyncResult(job.package_id, DISABLED)

        if job.exists:
            if job.pin:
                return SyncResult(job.package_id, PINNED)
            return self._update(job)

        return self._install(job)

    def _install(self, job: SyncJob) -> SyncResult:
        try:
            self._run(self.runner.clone(job.directory, job.url, job.branch))
        except SyncError as e:
            return SyncResult(job.package_id, FAILED,
                              message=f"failed to install {job.package_id}; reason: {e}")

        head = self.runner.rev_parse(job.directory, "HEAD")
        after = head.output.strip() if head.ok else None
        return SyncResult(job.package_id, INSTALLED, after=after)

    def _update(self, job: SyncJob) -> SyncResult:
        before = after = None
        try:
            before = self._run(self.runner.rev_parse(job.directory, "HEAD"))
            self._run(self.runner.fetch(job.directory, "origin", job.branch or "HEAD"))
            after = self._run(self.runner.rev_parse(job.directory, "FETCH_HEAD"))

            if before == after:
                return SyncResult(job.package_id, SKIPPED, before=before, after=after)

            self._run(self.runner.reset(job.directory, after))
        except SyncError as e:
            return SyncResult(job.package_id, FAILED, before=before, after=after,
                              message=f"failed to update {job.package_id}; reason: {e}")

        return SyncResult(job.package_id, UPDATED, before=before, after=after)

    # ---------------------------------------------------
    # Aplicação dos resultados (thread chamadora)
    # ---------------------------------------------------
    def apply(self, result: SyncResult):
        package = self.graph[result.package_id]

        if result.status == INSTALLED:
            package.exists = True
            package.revision = result.after
            self.scheduler.invalidate(package)
            self.log.stage("install", f"installed {package.id}")
        elif result.status == UPDATED:
            package.revision = result.after
            self.scheduler.invalidate(package)
            self.log.stage("update", f"updated {package.id}; {result.before} -> {result.after}")
        elif result.status == SKIPPED:
            package.revision = result.after
            self.log.stage("skip", f"skipped {package.id}")
        elif result.status == FAILED:
            self.log.stage("error", result.message)

    def sync(self, package: Package) -> SyncResult:
        """Sincroniza um único pacote, sem limpeza nem propagação."""
        result = self.sync_job(SyncJob.from_package(package))
        self.apply(result)
        return result

    def sync_list(self, packages: Iterable[Package]) -> SyncSummary:
        packages = list(packages)
        summary = SyncSummary()
        if not packages:
            return summary

        with ThreadPoolExecutor(max_workers=self.concurrency) as ex:
            futures = {ex.submit(self.sync_job, SyncJob.from_package(p)): p for p in packages}
            for future in as_completed(futures):
                package = futures[future]
                try:
                    result = future.result()
                except Exception as e:
                    result = SyncResult(package.id, FAILED,
                                        message=f"failed to sync {package.id}; reason: {e}")
                self.apply(result)
                summary.results.append(result)

        # barreira: todos os pacotes chegaram a um estado terminal
        summary.cleaned = self.cleaner.clean()
        summary.reloaded = self.scheduler.reload()

        if summary.has_errors:
            self.log.stage("error", "there were errors during sync; see the log for more information")
        else:
            count = len(packages)
            self.log.stage("update", f"synchronized {count} {'package' if count == 1 else 'packages'}")

        return summary
