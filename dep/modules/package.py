# dep/modules/package.py
from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional, Union

Hook = Union[Callable[[], Any], str]

STAGES = ("setup", "config", "load")


class DepError(Exception):
    pass


class Package:
    """
    Nó do grafo de pacotes.

    `dependencies` e `dependents` guardam identidades (não objetos); a tabela de
    nós do `DependencyGraph` resolve cada identidade.
    """

    def __init__(self, id: str, name: str, url: str):
        self.id = id
        self.name = name
        self.url = url
        self.branch: Optional[str] = None
        self.dir: Optional[str] = None
        self.pin = False
        self.enabled = True
        self.exists = False
        self.added = False
        self.configured = False
        self.loaded = False
        self.subtree_configured = False
        self.subtree_loaded = False
        self.error = False
        self.revision: Optional[str] = None
        self.root = False
        self.hooks: Dict[str, List[Hook]] = {stage: [] for stage in STAGES}
        self.dependencies: List[str] = []
        self.dependents: List[str] = []
        self.perf: Dict[str, float] = {}

    def add_hook(self, stage: str, hook: Hook):
        self.hooks[stage].append(hook)

    def reset_flags(self, completion: bool = True):
        """Volta o nó para 'pending' nas duas fases."""
        if completion:
            self.configured = False
            self.loaded = False
        self.subtree_configured = False
        self.subtree_loaded = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "branch": self.branch,
            "dir": self.dir,
            "exists": self.exists,
            "enabled": self.enabled,
            "pin": self.pin,
            "configured": self.configured,
            "loaded": self.loaded,
            "error": self.error,
            "revision": self.revision,
            "dependencies": list(self.dependencies),
            "dependents": list(self.dependents),
            "perf": dict(self.perf),
        }

    def __repr__(self):
        return f"<Package {self.id} exists={self.exists} enabled={self.enabled} pin={self.pin}>"
