# dep/modules/clean.py
"""
clean.py - remove do diretório base os clones que nenhum pacote conhecido referencia.

Falhas de remoção são registradas por entrada e não interrompem o restante.
"""
from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional

from dep.modules import logger as _logger
from dep.modules.graph import DependencyGraph
from dep.modules.utils import Utils


class CleanResult:
    def __init__(self):
        self.deleted: List[str] = []
        self.failed: Dict[str, str] = {}
        self.error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failed

    def to_dict(self):
        return {"deleted": list(self.deleted), "failed": dict(self.failed), "error": self.error}


class Cleaner:
    def __init__(self, graph: DependencyGraph, concurrency: int = 8,
                 logger: Optional[_logger.Logger] = None):
        self.graph = graph
        self.concurrency = concurrency
        self.log = logger or _logger.Logger("clean")

    def stale_entries(self) -> Dict[str, str]:
        """Entradas do diretório base cujo nome não é o nome local de nenhum pacote."""
        base_dir = self.graph.base_dir
        queue = {name: Utils.join_path(base_dir, name) for name in Utils.list_entries(base_dir)}
        for package in self.graph:
            queue.pop(package.name, None)
        return queue

    def clean(self) -> CleanResult:
        result = CleanResult()
        try:
            queue = self.stale_entries()
        except FileNotFoundError:
            self.log.debug(f"nothing to clean; {self.graph.base_dir} does not exist")
            return result
        except OSError as e:
            result.error = str(e)
            self.log.stage("error", f"failed to clean; reason: {e}")
            return result

        if not queue:
            return result

        with ThreadPoolExecutor(max_workers=self.concurrency) as ex:
            futures = {ex.submit(Utils.remove_tree, path): name for name, path in queue.items()}
            for future in as_completed(futures):
                name = futures[future]
                try:
                    future.result()
                except OSError as e:
                    result.failed[name] = str(e)
                    self.log.stage("error", f"failed to delete {name}; reason: {e}")
                else:
                    result.deleted.append(name)
                    self.log.stage("clean", f"deleted {name}")

        result.deleted.sort()
        return result
