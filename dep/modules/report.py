# dep/modules/report.py
"""
Relatório de estado: pacotes em ordem de ativação, tempos por fase e o grafo
de dependências a partir da raiz.
"""
from __future__ import annotations
from typing import Dict, List, Optional

from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from dep.modules.manager import DepManager
from dep.modules.package import Package

PERF_KEYS = ("setup", "activate", "config", "load")


def activation_order(manager: DepManager) -> List[Package]:
    """Ordem em que os pacotes seriam ativados (dependências sempre antes)."""
    graph = manager.graph
    visited: Dict[str, bool] = {}
    order: List[Package] = []

    def visit(package: Package):
        if package.id in visited:
            return
        for dependency_id in package.dependencies:
            if dependency_id not in visited:
                return
        visited[package.id] = True
        order.append(package)
        for dependent in graph.dependents_of(package):
            visit(dependent)

    visit(graph.root)
    return order


def markers(package: Package) -> List[str]:
    result = []
    if not package.exists:
        result.append("*not installed")
    if not package.loaded:
        result.append("*not loaded")
    if not package.enabled:
        result.append("*disabled")
    if package.pin:
        result.append("*pinned")
    if package.error:
        result.append("*error")
    return result


def package_table(manager: DepManager, commits: Optional[Dict[str, str]] = None) -> Table:
    commits = commits or {}
    packages = activation_order(manager)
    table = Table(title=f"Installed packages ({len(manager.graph)})")
    table.add_column("Revision", style="dim")
    table.add_column("Package", style="underline")
    table.add_column("State", style="dim")
    for package in packages:
        revision = commits.get(package.id) or package.revision or ""
        table.add_row(revision, package.id, " ".join(markers(package)))
    return table


def timing_rows(manager: DepManager):
    rows = []
    for package in manager.graph:
        profile = {key: package.perf.get(key, 0.0) for key in PERF_KEYS}
        if package.root:
            profile["setup"] += sum(manager.perf.values())
        rows.append((package.id, profile, sum(profile.values())))
    rows.sort(key=lambda row: row[2], reverse=True)
    return rows


def timing_table(manager: DepManager) -> Table:
    table = Table(title="Load time (μs)")
    table.add_column("Package", style="underline")
    table.add_column("total", justify="right")
    for key in PERF_KEYS:
        table.add_column(key, justify="right", style="dim")
    for package_id, profile, total in timing_rows(manager):
        table.add_row(package_id, f"{total * 1e6:.0f}",
                      *(f"{profile[key] * 1e6:.0f}" for key in PERF_KEYS))
    return table


def dependency_tree(manager: DepManager) -> Tree:
    graph = manager.graph
    root = graph.root

    def label(package: Package) -> str:
        deps = [p.id for p in graph.dependency_closure(package)[1:] if not p.root]
        if deps:
            return f"[underline]{package.id}[/underline] [dim]{' '.join(deps)}[/dim]"
        return f"[underline]{package.id}[/underline]"

    def walk(package: Package, node: Tree):
        for dependent in graph.dependents_of(package):
            walk(dependent, node.add(label(dependent)))

    tree = Tree(label(root))
    walk(root, tree)
    return tree


def render(manager: DepManager, console: Optional[Console] = None,
           commits: Optional[Dict[str, str]] = None):
    console = console or Console()
    console.print(package_table(manager, commits))
    console.print(timing_table(manager))
    console.print("Dependency graph:")
    console.print(dependency_tree(manager))
