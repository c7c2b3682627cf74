# dep/modules/cli.py
"""
CLI do gerenciador 'dep'.
- Usa rich para saída colorida, tabelas, árvores e spinner.
- A lista de specs vem de um arquivo YAML (--specs) ou de um módulo Python (--module).

Exemplos:
  dep --specs ~/.config/dep/packages.yaml sync
  dep --module my_packages list
  dep --specs packages.yaml clean
"""

from __future__ import annotations
import argparse
import os
import sys
import traceback
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from dep.modules import logger as _logger
from dep.modules import report, specfile
from dep.modules.config import config
from dep.modules.manager import DepManager
from dep.modules.package import DepError

DEFAULT_SPECS = os.path.expanduser("~/.config/dep/packages.yaml")


def make_console(no_color: bool, quiet: bool) -> Console:
    if no_color:
        return Console(color_system=None, force_terminal=False, highlight=False, quiet=quiet)
    return Console(quiet=quiet)


class CLI:
    def __init__(self, console: Console, manager: Optional[DepManager] = None):
        self.console = console
        self.log = _logger.Logger("cli")
        self.manager = manager or DepManager(logger=self.log)

    def load_specs(self, args: argparse.Namespace):
        if args.module:
            return specfile.load_module(args.module)
        return specfile.load_yaml(args.specs or DEFAULT_SPECS)

    def _setup(self, args: argparse.Namespace, sync: bool = False):
        specs = self.load_specs(args)
        if args.base_dir:
            specs["base_dir"] = args.base_dir
        return self.manager.setup(specs, sync=sync)

    # -----------------------
    # comandos
    # -----------------------
    def cmd_sync(self, args: argparse.Namespace) -> int:
        self._setup(args)
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                      console=self.console, transient=True) as p:
            p.add_task("Synchronizing packages...", total=None)
            summary = self.manager.sync()

        counts = summary.counts()
        text = "\n".join(f"{status}: {count}" for status, count in sorted(counts.items())) or "nothing to do"
        if summary.cleaned and summary.cleaned.deleted:
            text += f"\ncleaned: {', '.join(summary.cleaned.deleted)}"
        style = "red" if summary.has_errors else "green"
        self.console.print(Panel(text, title="sync", style=style))
        return 2 if summary.has_errors else 0

    def cmd_reload(self, args: argparse.Namespace) -> int:
        self._setup(args)
        reloaded = self.manager.reload()
        self.console.print("[green]reloaded[/green]" if reloaded else "[yellow]nothing to reload[/yellow]")
        return 0

    def cmd_clean(self, args: argparse.Namespace) -> int:
        self._setup(args)
        result = self.manager.clean()
        for name in result.deleted:
            self.console.print(f"[cyan]deleted[/cyan] {name}")
        for name, err in sorted(result.failed.items()):
            self.console.print(f"[red]failed to delete {name}: {escape(err)}[/red]")
        if result.error:
            self.console.print(f"[red]failed to clean: {escape(result.error)}[/red]")
        return 0 if result.ok else 2

    def cmd_list(self, args: argparse.Namespace) -> int:
        self._setup(args)
        report.render(self.manager, self.console, self.manager.commits())
        return 0

    def cmd_log(self, args: argparse.Namespace) -> int:
        self.console.print(self.log.log_file)
        return 0


def build_argparser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="dep", description="Declarative git package manager")
    ap.add_argument("--no-color", action="store_true", help="Disable colored output")
    ap.add_argument("--quiet", action="store_true", help="Suppress console output")
    ap.add_argument("--conf", help="Path to dep.conf (overrides the default locations)")
    src = ap.add_mutually_exclusive_group()
    src.add_argument("--specs", help=f"YAML spec file (default: {DEFAULT_SPECS})")
    src.add_argument("--module", help="Python module defining 'specs'")
    ap.add_argument("--base-dir", help="Directory holding the package clones")

    sub = ap.add_subparsers(dest="command", required=True)
    sub.add_parser("sync", help="Install missing packages and update the others")
    sub.add_parser("reload", help="Re-run load hooks for every package")
    sub.add_parser("clean", help="Delete clones no longer referenced by any package")
    sub.add_parser("list", aliases=["ls"], help="Show packages, load times and the dependency graph")
    sub.add_parser("log", help="Print the log file path")
    return ap


def main(argv: Optional[List[str]] = None):
    argv = sys.argv[1:] if argv is None else argv
    parser = build_argparser()
    args = parser.parse_args(argv)
    console = make_console(args.no_color, args.quiet)

    if args.conf:
        config.locations = [args.conf]
        config.reload()

    cli = CLI(console=console)
    handlers = {
        "sync": cli.cmd_sync,
        "reload": cli.cmd_reload,
        "clean": cli.cmd_clean,
        "list": cli.cmd_list,
        "ls": cli.cmd_list,
        "log": cli.cmd_log,
    }
    try:
        return handlers[args.command](args)
    except DepError as e:
        console.print(str(e), style="red", markup=False)
        return 1
    except Exception as e:
        console.print(f"Unhandled CLI error: {e}", style="red", markup=False)
        cli.log.error(traceback.format_exc())
        return 3


if __name__ == "__main__":
    raise SystemExit(main())
