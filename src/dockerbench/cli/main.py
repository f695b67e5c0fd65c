#!/usr/bin/env python3
"""
dockerbench Command Line Interface

Entry point for running the host versus container comparison. The CLI is
built with Typer, logs through a rich handler and reports any fatal cause
as a single line before exiting non-zero.

Usage:
    dockerbench --help
    dockerbench [--verbose] [--config PATH] [command] [options]

Examples:
    dockerbench run
    dockerbench run --trials 5 --subsystem cpu --subsystem network
    dockerbench run --fail-fast --legacy-zero-on-parse-failure
    dockerbench preflight check
    dockerbench config

Environment Variables:
    DOCKERBENCH_CONFIG_PATH: Path to configuration file (YAML or JSON)
    DOCKERBENCH_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

import logging
import os
import signal
import sys
from pathlib import Path
from typing import Annotated, List, Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler

from dockerbench import __version__
from dockerbench.config import BenchmarkConfig, load_config
from dockerbench.exceptions import ConfigurationError, DockerBenchError
from dockerbench.scenarios import Subsystem
from dockerbench.session import run_session

console = Console()

logging.basicConfig(
    level=os.environ.get("DOCKERBENCH_LOG_LEVEL", "INFO").upper(),
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)],
)
logger = logging.getLogger(__name__)

app = typer.Typer(
    name="dockerbench",
    help="Compare bare-host and container performance across CPU, memory, disk I/O and network.",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)

# Shared between the callback and commands
state: dict = {"config_path": None}


def _load(overrides: Optional[dict] = None) -> BenchmarkConfig:
    try:
        return load_config(state["config_path"], overrides)
    except ConfigurationError as e:
        console.print(f"[bold red]Error:[/] {e.message}", highlight=False)
        raise typer.Exit(code=1)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose output.")] = False,
    config_path: Annotated[Optional[str], typer.Option("--config", "-c", help="Path to configuration file.")] = None,
):
    """
    dockerbench: host versus container benchmark orchestrator.
    """
    if verbose:
        logging.getLogger("dockerbench").setLevel(logging.DEBUG)
        logger.debug("Verbose logging enabled")
    else:
        logging.getLogger("dockerbench").setLevel(logging.INFO)
    state["config_path"] = config_path


@app.command()
def run(
    trials: Annotated[Optional[int], typer.Option("--trials", "-n", min=1, help="Trials per scenario.")] = None,
    subsystem: Annotated[Optional[List[Subsystem]], typer.Option("--subsystem", "-s", help="Subsystem to benchmark (repeatable, default: all).")] = None,
    fail_fast: Annotated[Optional[bool], typer.Option("--fail-fast/--keep-going", help="Abort on the first failed trial instead of recording it.")] = None,
    legacy_zero: Annotated[Optional[bool], typer.Option("--legacy-zero-on-parse-failure", help="Count unparseable output as 0.0 in the mean.")] = None,
    image: Annotated[Optional[str], typer.Option("--image", help="Benchmark container image.")] = None,
    host_ip: Annotated[Optional[str], typer.Option("--host-ip", help="Host IP for network tests (default: auto-detect).")] = None,
    log_dir: Annotated[Optional[Path], typer.Option("--log-dir", help="Directory for sysbench fileio logs.")] = None,
) -> None:
    """
    Run the full benchmark matrix and print the averaged comparison report.
    """
    config = _load({
        "num_runs": trials,
        "subsystems": subsystem or None,
        "fail_fast": fail_fast,
        "count_parse_failures": legacy_zero,
        "docker_image": image,
        "host_ip": host_ip,
        "log_dir": log_dir,
    })

    try:
        result = run_session(config)
    except DockerBenchError as e:
        logger.debug("Run aborted", exc_info=True)
        console.print(f"[bold red]Error:[/] {e.message}", highlight=False)
        raise typer.Exit(code=1)

    typer.echo(result.report, nl=False)
    typer.echo("========== BENCHMARK COMPLETE ==========")


@app.command("config")
def show_config() -> None:
    """Print the effective configuration as YAML."""
    config = _load()
    typer.echo(yaml.safe_dump(config.to_display_dict(), sort_keys=False), nl=False)


@app.command()
def version():
    """Display the current version of dockerbench."""
    console.print(f"dockerbench v[bold cyan]{__version__}[/bold cyan]")


from dockerbench.cli.commands.preflight import preflight_app  # noqa: E402

app.add_typer(preflight_app)


def _terminate(signum, frame):
    # SystemExit unwinds normally, so atexit hooks (the iperf3 listener) still run.
    raise SystemExit(128 + signum)


def main():
    """Main entry point for the CLI."""
    signal.signal(signal.SIGTERM, _terminate)
    try:
        app()
    except Exception as e:
        logger.error(f"Unhandled exception: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
