"""
Comparison report rendering.

Builds one rich table per subsystem from the accumulator's means and
renders them to plain text. Rendering goes through an in-memory,
non-terminal console of fixed width so the same accumulator always produces
byte-identical output.
"""

from __future__ import annotations

import io
from typing import Iterable, List, Optional, Sequence, Tuple

from rich import box
from rich.console import Console
from rich.table import Table

from dockerbench.accumulator import ScenarioAccumulator
from dockerbench.scenarios import DiskMetric, Environment, ScenarioId, Subsystem

UNAVAILABLE = "N/A"

_LABEL_WIDTH = 28

_DISK_ROWS: Tuple[Tuple[Environment, str], ...] = (
    (Environment.HOST, "Host"),
    (Environment.CONTAINER_INTERNAL, "Container (Internal)"),
    (Environment.CONTAINER_VOLUME_MOUNT, "Container (Volume Mount)"),
)

_DISK_COLUMNS: Tuple[Tuple[DiskMetric, str], ...] = (
    (DiskMetric.READS, "Reads/s"),
    (DiskMetric.WRITES, "Writes/s"),
    (DiskMetric.READ_MIBPS, "Read MiB/s"),
    (DiskMetric.WRITE_MIBPS, "Write MiB/s"),
)

_NETWORK_ROWS: Tuple[Tuple[Environment, str], ...] = (
    (Environment.HOST, "Host -> Host (IP)"),
    (Environment.CONTAINER_BRIDGE, "Container (Bridge) -> Host"),
    (Environment.CONTAINER_HOST_NETWORK, "Container (Host Net) -> Host"),
)


class ReportRenderer:
    """Formats per-scenario means into a comparison report grouped by subsystem."""

    def __init__(
        self,
        accumulator: ScenarioAccumulator,
        *,
        cpu_threads: int,
        num_runs: int,
        file_test_mode: str,
        precision: int = 3,
        width: int = 100,
        subsystems: Optional[Iterable[Subsystem]] = None,
    ):
        self.accumulator = accumulator
        self.cpu_threads = cpu_threads
        self.num_runs = num_runs
        self.file_test_mode = file_test_mode
        self.precision = precision
        self.width = width
        selected = set(subsystems) if subsystems is not None else set(Subsystem)
        self.subsystems = [s for s in Subsystem if s in selected]

    def format_value(self, scenario: ScenarioId) -> str:
        mean = self.accumulator.mean(scenario)
        if mean is None:
            return UNAVAILABLE
        return f"{mean:.{self.precision}f}"

    def _thread_rows(self) -> List[Tuple[Environment, int, str]]:
        rows = []
        for threads in dict.fromkeys((1, self.cpu_threads)):
            rows.append((Environment.HOST, threads, f"Host ({threads}T)"))
            rows.append((Environment.CONTAINER_INTERNAL, threads, f"Container ({threads}T)"))
        return rows

    def _two_column_table(self, title: str, rows: Sequence[Tuple[str, ScenarioId]]) -> Table:
        table = Table(title=title, box=box.ASCII, title_justify="left", show_header=True)
        table.add_column("Scenario", min_width=_LABEL_WIDTH, no_wrap=True)
        table.add_column("Average", justify="right", no_wrap=True)
        for label, scenario in rows:
            table.add_row(label, self.format_value(scenario))
        return table

    def cpu_table(self) -> Table:
        rows = [(label, ScenarioId.cpu(env, threads)) for env, threads, label in self._thread_rows()]
        return self._two_column_table("CPU (events/sec, higher is better)", rows)

    def memory_table(self) -> Table:
        rows = [(label, ScenarioId.memory(env, threads)) for env, threads, label in self._thread_rows()]
        return self._two_column_table("Memory (MiB/sec, higher is better)", rows)

    def disk_table(self) -> Table:
        table = Table(
            title=f"Disk I/O ({self.file_test_mode}, higher is better)",
            box=box.ASCII,
            title_justify="left",
        )
        table.add_column("Scenario", min_width=_LABEL_WIDTH, no_wrap=True)
        for _, header in _DISK_COLUMNS:
            table.add_column(header, justify="right", min_width=12, no_wrap=True)
        for environment, label in _DISK_ROWS:
            table.add_row(
                label,
                *(self.format_value(ScenarioId.disk(environment, metric)) for metric, _ in _DISK_COLUMNS),
            )
        return table

    def network_table(self) -> Table:
        rows = [(label, ScenarioId.network(env)) for env, label in _NETWORK_ROWS]
        return self._two_column_table("Network (Gbits/sec, higher is better)", rows)

    def failures_table(self) -> Optional[Table]:
        failed = [
            (scenario, entry) for scenario, entry in self.accumulator.failed()
            if scenario.subsystem in self.subsystems
        ]
        if not failed:
            return None
        table = Table(title="Failed trials", box=box.ASCII, title_justify="left")
        table.add_column("Scenario", no_wrap=True)
        table.add_column("Failed", justify="right", no_wrap=True)
        table.add_column("Last reason", overflow="fold")
        for scenario, entry in failed:
            table.add_row(scenario.key, f"{len(entry.failures)}/{entry.attempts}", entry.failures[-1])
        return table

    def tables(self) -> List[Table]:
        builders = {
            Subsystem.CPU: self.cpu_table,
            Subsystem.MEMORY: self.memory_table,
            Subsystem.DISK_IO: self.disk_table,
            Subsystem.NETWORK: self.network_table,
        }
        tables = [builders[subsystem]() for subsystem in self.subsystems]
        failures = self.failures_table()
        if failures is not None:
            tables.append(failures)
        return tables

    def render(self) -> str:
        buffer = io.StringIO()
        console = Console(
            file=buffer,
            width=self.width,
            color_system=None,
            force_terminal=False,
            force_jupyter=False,
            highlight=False,
            emoji=False,
            markup=False,
        )
        console.print(f"========== BENCHMARK RESULTS (AVERAGES OVER {self.num_runs} RUNS) ==========")
        for table in self.tables():
            console.print()
            console.print(table)
        return buffer.getvalue()
