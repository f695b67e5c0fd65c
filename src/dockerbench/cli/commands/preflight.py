"""Preflight CLI commands for dockerbench.

Purpose:
    Let the operator verify the environment (tools on PATH, benchmark image,
    host IP, CPU threads) without starting any benchmark.
External Dependencies:
    Uses the `rich` console library for terminal rendering and runs
    ``docker image inspect`` through the trial runner.
Fallback Semantics:
    Every check is reported; the command exits non-zero when any required
    dependency is missing instead of stopping at the first one.
"""

from __future__ import annotations

import logging
import shutil
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from dockerbench.config import load_config
from dockerbench.exceptions import ConfigurationError
from dockerbench.preflight import Preflight, ToolStatus
from dockerbench.runner import TrialRunner

logger = logging.getLogger(__name__)
console = Console()

preflight_app = typer.Typer(name="preflight", help="Verify the benchmark environment.")


def _status_cell(ok: bool) -> str:
    return "[green]ok[/]" if ok else "[bold red]missing[/]"


def _render_tool_table(statuses: list[ToolStatus], image: str, image_ok: bool,
                       host_ip: Optional[str], cpu_threads: int) -> Table:
    """
    Build a Rich table summarising every preflight check.

    Parameters:
        statuses: Per-tool lookup results.
        image: Benchmark image name.
        image_ok: Whether the image exists locally.
        host_ip: Discovered or configured host IP, if any.
        cpu_threads: Thread count used for multi-threaded tests.
    Returns:
        Table: Rich table instance ready for rendering.
    """
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Details", overflow="fold")

    for status in statuses:
        table.add_row(f"command: {status.name}", _status_cell(status.found), status.path or "-")
    table.add_row(f"image: {image}", _status_cell(image_ok), "-")
    table.add_row("host ip", _status_cell(host_ip is not None), host_ip or "-")
    table.add_row("cpu threads", _status_cell(True), str(cpu_threads))
    return table


@preflight_app.command("check")
def preflight_check(ctx: typer.Context) -> None:
    """Check tools, benchmark image and host IP; exit 1 if anything is missing."""
    config_path = ctx.find_root().params.get("config_path")
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        console.print(f"[bold red]Error:[/] {e.message}", highlight=False)
        raise typer.Exit(code=1)

    preflight = Preflight(config, TrialRunner(config.docker_image), which=shutil.which)
    statuses = preflight.check_tools()
    docker_found = any(s.name == "docker" and s.found for s in statuses)
    image_ok = docker_found and preflight.runner.image_exists(config.docker_image)
    host_ip = preflight.resolve_host_ip()
    cpu_threads = preflight.resolve_cpu_threads()

    console.print(_render_tool_table(statuses, config.docker_image, image_ok, host_ip, cpu_threads))

    problems = [s.name for s in statuses if not s.found]
    if not image_ok:
        problems.append(f"image {config.docker_image}")
    if host_ip is None:
        problems.append("host ip")
    if problems:
        console.print(f"[bold red]Preflight failed:[/] missing {', '.join(problems)}")
        raise typer.Exit(code=1)
    console.print("[green]All checks passed.[/]")
