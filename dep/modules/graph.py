# dep/modules/graph.py
"""
graph.py - grafo de dependências entre pacotes.

- Funde specs declarativas numa tabela de nós única por identidade ("user/package").
- Mantém arestas bidirecionais (dependencies <-> dependents) sem duplicatas.
- Detecta ciclos (Tarjan) sobre as arestas de dependents.
- Ordena nós e adjacências de forma determinística (nº de dependências, identidade).
"""

from __future__ import annotations
import importlib
import os
import re
from typing import Any, Dict, Iterator, List, Optional

from dep.modules import logger as _logger
from dep.modules.package import DepError, Package, STAGES
from dep.modules.utils import Utils

ID_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+/([A-Za-z0-9_.\-]+)$")

SPEC_KEYS = ("id", "name", "url", "branch", "pin", "disable", "requires", "deps") + STAGES
LIST_KEYS = ("packages", "pin", "disable", "modules", "prefix", "name")
RESERVED_NAMES = (".", "..")


class SpecError(DepError):
    pass


class CycleError(DepError):
    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        super().__init__("circular dependency detected in package dependency graph: " + " -> ".join(cycle))


def parse_name_from_id(id: str) -> str:
    m = ID_PATTERN.match(id)
    if not m or m.group(1) in RESERVED_NAMES:
        raise SpecError(f'invalid package name "{id}"; must be in the format "user/package"')
    return m.group(1)


def _is_nonempty_str(value) -> bool:
    return isinstance(value, str) and len(value) != 0


def _is_hook(value) -> bool:
    return callable(value) or _is_nonempty_str(value)


def _as_list(value) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class DependencyGraph:
    """
    Tabela de pacotes (identidade -> Package) mais a ordem de declaração.
    """

    def __init__(self, base_dir: str, logger: Optional[_logger.Logger] = None):
        self.base_dir = os.path.abspath(os.path.expanduser(base_dir))
        self.packages: Dict[str, Package] = {}
        self.order: List[str] = []
        self.root: Optional[Package] = None
        self.log = logger or _logger.Logger("graph")

    # ---------------------------------------------------
    # Acesso
    # ---------------------------------------------------
    def __getitem__(self, id: str) -> Package:
        return self.packages[id]

    def __contains__(self, id: str) -> bool:
        return id in self.packages

    def __iter__(self) -> Iterator[Package]:
        return (self.packages[id] for id in self.order)

    def __len__(self) -> int:
        return len(self.order)

    def get(self, id: str) -> Optional[Package]:
        return self.packages.get(id)

    def dependencies_of(self, pkg: Package) -> List[Package]:
        return [self.packages[id] for id in pkg.dependencies]

    def dependents_of(self, pkg: Package) -> List[Package]:
        return [self.packages[id] for id in pkg.dependents]

    # ---------------------------------------------------
    # Construção
    # ---------------------------------------------------
    def _node(self, id: str) -> Package:
        pkg = self.packages.get(id)
        if pkg is None:
            name = parse_name_from_id(id)
            pkg = Package(id, name, f"https://github.com/{id}.git")
            self.packages[id] = pkg
            self.order.append(id)
        return pkg

    def set_root(self, id: str) -> Package:
        """Cria o nó sintético que representa o próprio gerenciador."""
        root = self._node(id)
        root.root = True
        root.pin = True
        root.exists = True
        root.dir = Utils.join_path(self.base_dir, root.name)
        self.root = root
        return root

    def link(self, parent: Package, child: Package):
        """Liga dois pacotes de forma que `parent` complete cada fase antes de `child`."""
        if child.id not in parent.dependents:
            parent.dependents.append(child.id)
        if parent.id not in child.dependencies:
            child.dependencies.append(parent.id)

    def validate_spec(self, spec) -> Dict[str, Any]:
        """Normaliza e valida uma spec; levanta SpecError nomeando o campo e a spec."""
        if isinstance(spec, str):
            spec = {"id": spec}
        if not isinstance(spec, dict):
            raise SpecError(f"package spec must be a string or a mapping (spec={spec!r})")

        def check(ok, message):
            if not ok:
                raise SpecError(f"{message} (spec={spec!r})")

        check("id" in spec, "package id missing from spec")
        check(isinstance(spec["id"], str), "package id must be a string")
        match = ID_PATTERN.match(spec["id"])
        check(match is not None and match.group(1) not in RESERVED_NAMES,
              f'invalid package name "{spec["id"]}"; must be in the format "user/package"')

        unknown = sorted(k for k in spec if k not in SPEC_KEYS)
        check(not unknown, f"unknown package field(s): {', '.join(map(str, unknown))}")

        check(spec.get("name") is None or _is_nonempty_str(spec["name"]), "package name must be a string")
        check(spec.get("name") is None or "/" not in spec["name"], "package name must not contain '/'")
        check(spec.get("name") not in RESERVED_NAMES, "package name must not be '.' or '..'")
        check(spec.get("url") is None or _is_nonempty_str(spec["url"]), "package url must be a string")
        check(spec.get("branch") is None or _is_nonempty_str(spec["branch"]), "package branch must be a string")
        check(spec.get("pin") is None or isinstance(spec["pin"], bool), "package pin must be a boolean")
        check(spec.get("disable") is None or isinstance(spec["disable"], bool), "package disable must be a boolean")

        for key in ("requires", "deps"):
            value = spec.get(key)
            check(value is None or isinstance(value, (str, dict, list, tuple)),
                  f"package {key} must be a string, mapping or list")

        for stage in STAGES:
            value = spec.get(stage)
            if isinstance(value, (list, tuple)):
                check(all(_is_hook(h) for h in value), f"package {stage} must be a function, command or list")
            else:
                check(value is None or _is_hook(value), f"package {stage} must be a function, command or list")

        return spec

    def add_spec(self, spec, scope: Optional[Dict[str, bool]] = None) -> Package:
        """Cria ou atualiza um pacote a partir da spec e retorna o pacote."""
        spec = self.validate_spec(spec)
        scope = scope or {}

        pkg = self._node(spec["id"])
        prev_dir = pkg.dir

        # última sobrescrita não nula vence
        pkg.name = spec.get("name") or pkg.name
        pkg.url = spec.get("url") or pkg.url
        pkg.branch = spec.get("branch") or pkg.branch
        pkg.dir = Utils.join_path(self.base_dir, pkg.name)
        pkg.pin = bool(scope.get("pin") or spec.get("pin") or pkg.pin)
        pkg.enabled = bool(not scope.get("disable") and not spec.get("disable") and pkg.enabled)

        if prev_dir != pkg.dir and not pkg.root:
            pkg.exists = Utils.is_dir(pkg.dir)
            pkg.configured = pkg.exists

        for stage in STAGES:
            for hook in _as_list(spec.get(stage)):
                pkg.add_hook(stage, hook)

        # todo pacote depende implicitamente do gerenciador
        if self.root is not None and pkg is not self.root:
            self.link(self.root, pkg)

        for requirement in _as_list(spec.get("requires")):
            self.link(self.add_spec(requirement, scope), pkg)

        for dependent in _as_list(spec.get("deps")):
            self.link(pkg, self.add_spec(dependent, scope))

        return pkg

    def add_specs(self, specs, scope: Optional[Dict[str, bool]] = None):
        """
        Adiciona uma lista de specs (lista simples ou mapping com packages/modules).
        Flags do escopo externo têm precedência sobre as da lista interna.
        """
        if isinstance(specs, (list, tuple)):
            specs = {"packages": list(specs)}
        if not isinstance(specs, dict):
            raise SpecError(f"package list must be a list or a mapping (specs={specs!r})")

        unknown = sorted(k for k in specs if k not in LIST_KEYS)
        if unknown:
            raise SpecError(f"unknown package list field(s): {', '.join(map(str, unknown))}")
        if specs.get("pin") is not None and not isinstance(specs["pin"], bool):
            raise SpecError("package list pin must be a boolean")
        if specs.get("disable") is not None and not isinstance(specs["disable"], bool):
            raise SpecError("package list disable must be a boolean")
        if not isinstance(specs.get("packages") or [], (list, tuple)):
            raise SpecError("package list packages must be a list")
        if not isinstance(specs.get("modules") or [], (list, tuple)):
            raise SpecError("package list module list must be a list")
        if specs.get("prefix") is not None and not isinstance(specs["prefix"], str):
            raise SpecError("package list module prefix must be a string")

        scope = scope or {}
        scope = {
            "pin": bool(scope.get("pin") or specs.get("pin")),
            "disable": bool(scope.get("disable") or specs.get("disable")),
        }

        for spec in specs.get("packages") or []:
            self.add_spec(spec, scope)

        prefix = specs.get("prefix") or ""
        for module in specs.get("modules") or []:
            name, inner = self._resolve_module(module, prefix)
            try:
                self.add_specs(inner, scope)
            except SpecError as e:
                raise SpecError(f"{e} <- {name}") from e

    def _resolve_module(self, module, prefix: str):
        if isinstance(module, str):
            name = prefix + module
            try:
                imported = importlib.import_module(name)
            except ImportError as e:
                raise SpecError(f"failed to import package list module {name}: {e}") from e
            inner = getattr(imported, "specs", None)
            if not isinstance(inner, (list, tuple, dict)):
                raise SpecError(f"package list module {name} did not define a 'specs' list")
            return name, inner
        if isinstance(module, (list, tuple)):
            return "<unnamed module>", module
        if isinstance(module, dict):
            return module.get("name") or "<unnamed module>", module
        raise SpecError(f"package list inner module must be a module name or a package list (module={module!r})")

    # ---------------------------------------------------
    # Validação do grafo
    # ---------------------------------------------------
    def detect_cycles(self) -> Optional[List[str]]:
        """
        Procura componentes fortemente conexos (Tarjan) nas arestas de dependents.
        Retorna o ciclo como lista de identidades, ou None.
        """
        index = 0
        indexes: Dict[str, int] = {}
        lowlink: Dict[str, int] = {}
        stack: List[str] = []
        on_stack = set()

        def connect(pkg: Package) -> Optional[List[str]]:
            nonlocal index
            indexes[pkg.id] = lowlink[pkg.id] = index
            index += 1
            stack.append(pkg.id)
            on_stack.add(pkg.id)

            for dependent_id in pkg.dependents:
                if dependent_id not in indexes:
                    cycle = connect(self.packages[dependent_id])
                    if cycle:
                        return cycle
                    lowlink[pkg.id] = min(lowlink[pkg.id], lowlink[dependent_id])
                elif dependent_id in on_stack:
                    lowlink[pkg.id] = min(lowlink[pkg.id], indexes[dependent_id])

            if lowlink[pkg.id] == indexes[pkg.id]:
                cycle = [pkg.id]
                while True:
                    node = stack.pop()
                    on_stack.discard(node)
                    cycle.append(node)
                    if node == pkg.id:
                        break

                # componente de um nó só conta se o pacote listou a si mesmo
                if len(cycle) > 2 or pkg.id in pkg.dependents:
                    return cycle
            return None

        for id in self.order:
            if id not in indexes:
                cycle = connect(self.packages[id])
                if cycle:
                    return cycle
        return None

    def ensure_acyclic(self):
        cycle = self.detect_cycles()
        if cycle:
            raise CycleError(cycle)

    def sort(self):
        """Ordena nós e adjacências por (nº de dependências, identidade)."""
        def key(id):
            return (len(self.packages[id].dependencies), id)

        self.order.sort(key=key)
        for pkg in self.packages.values():
            pkg.dependencies.sort(key=key)
            pkg.dependents.sort(key=key)

    def propagate_disabled(self):
        """Desabilita todo nó alcançável (via dependents) a partir de um nó desabilitado."""
        pending = [pkg for pkg in self if not pkg.enabled]
        while pending:
            pkg = pending.pop()
            for dependent in self.dependents_of(pkg):
                if dependent.enabled and not dependent.root:
                    dependent.enabled = False
                    pending.append(dependent)

    def ensure_unique_dirs(self):
        """Cada pacote precisa de um subdiretório próprio no diretório base."""
        owners: Dict[str, str] = {}
        for pkg in self:
            other = owners.setdefault(pkg.dir, pkg.id)
            if other != pkg.id:
                raise SpecError(f'packages "{other}" and "{pkg.id}" resolve to the same directory '
                                f'{pkg.dir}; set a distinct "name" for one of them')

    def finalize(self):
        self.ensure_acyclic()
        self.ensure_unique_dirs()
        self.sort()
        self.propagate_disabled()
        self.log.debug(f"dependency graph ready with {len(self)} packages")

    # ---------------------------------------------------
    # Fechos
    # ---------------------------------------------------
    def _closure(self, pkg: Package, attr: str) -> List[Package]:
        seen = {pkg.id}
        result = [pkg]
        pending = [pkg]
        while pending:
            node = pending.pop()
            for id in getattr(node, attr):
                if id not in seen:
                    seen.add(id)
                    other = self.packages[id]
                    result.append(other)
                    pending.append(other)
        return result

    def dependency_closure(self, pkg: Package) -> List[Package]:
        """O pacote e tudo de que ele depende, transitivamente."""
        return self._closure(pkg, "dependencies")

    def dependent_closure(self, pkg: Package) -> List[Package]:
        """O pacote e tudo que depende dele, transitivamente."""
        return self._closure(pkg, "dependents")
