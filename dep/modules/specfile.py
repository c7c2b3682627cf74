# dep/modules/specfile.py
"""
Carrega a configuração do usuário (lista de specs) de um arquivo YAML ou de um
módulo Python.

YAML:
    base_dir: ~/.local/share/dep/packages
    sync: new
    packages:
      - user/plugin
      - id: user/other
        branch: main
        requires: [user/plugin]
        config: "make"

Módulo Python: deve definir `specs` (lista ou mapping no mesmo formato); hooks
podem ser funções.
"""

from __future__ import annotations
import importlib
import os
from typing import Any, Dict

import yaml

from dep.modules.graph import SpecError

MANAGER_KEYS = ("base_dir", "sync")


def load_yaml(path: str) -> Dict[str, Any]:
    path = os.path.abspath(os.path.expanduser(path))
    if not os.path.exists(path):
        raise SpecError(f"spec file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SpecError(f"invalid YAML in {path}: {e}") from e
    return normalize(data, path)


def load_module(name: str) -> Dict[str, Any]:
    try:
        module = importlib.import_module(name)
    except ImportError as e:
        raise SpecError(f"failed to import spec module {name}: {e}") from e

    data = getattr(module, "specs", None)
    if data is None:
        raise SpecError(f"spec module {name} does not define 'specs'")
    return normalize(data, name)


def normalize(data, source: str) -> Dict[str, Any]:
    """Converte uma lista simples em mapping e valida as opções do gerenciador."""
    if data is None:
        data = {}
    if isinstance(data, (list, tuple)):
        data = {"packages": list(data)}
    if not isinstance(data, dict):
        raise SpecError(f"{source}: spec list must be a list or a mapping")

    data = dict(data)
    if data.get("base_dir") is not None and not isinstance(data["base_dir"], str):
        raise SpecError(f"{source}: base_dir must be a string")
    if data.get("sync") is not None and data["sync"] not in ("new", "always"):
        raise SpecError(f"{source}: sync must be 'new' or 'always'")
    return data


def split_options(data: Dict[str, Any]):
    """Separa opções do gerenciador (base_dir, sync) da lista de specs."""
    options = {k: data[k] for k in MANAGER_KEYS if data.get(k) is not None}
    specs = {k: v for k, v in data.items() if k not in MANAGER_KEYS}
    return options, specs
