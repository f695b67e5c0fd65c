"""
Benchmark matrix driver.

Enumerates the fixed scenario matrix and runs every scenario's trials
through the trial runner, feeding parsed results into the accumulator.

Execution is strictly sequential: subsystems run CPU, Memory, Disk I/O,
Network; environments and variants run in declared order; trials run one
after another with a short pause between them so back-to-back measurements
do not contend for the same resources.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from dockerbench.accumulator import ScenarioAccumulator
from dockerbench.config import BenchmarkConfig
from dockerbench.exceptions import NetworkServerError, TrialExecutionError
from dockerbench.network import NetworkServer
from dockerbench.parsers import (
    PARSE_FAILURE_SENTINEL,
    parse_iperf3,
    parse_sysbench_cpu,
    parse_sysbench_fileio,
    parse_sysbench_memory,
)
from dockerbench.runner import TrialRunner, VolumeMount
from dockerbench.scenarios import (
    SUBSYSTEM_ENVIRONMENTS,
    DiskMetric,
    Environment,
    ScenarioId,
    Subsystem,
)

logger = logging.getLogger(__name__)

LOOPBACK_IP = "127.0.0.1"

# Artifact name fragment per disk environment.
FILEIO_LOG_SLUGS: Dict[Environment, str] = {
    Environment.HOST: "host",
    Environment.CONTAINER_INTERNAL: "container_internal",
    Environment.CONTAINER_VOLUME_MOUNT: "container_volume",
}

# (scenario, parsed value or None, label used in progress lines)
Extraction = List[Tuple[ScenarioId, Optional[float], str]]


class BenchmarkMatrixDriver:
    """Drives the fixed scenario matrix to completion."""

    def __init__(
        self,
        config: BenchmarkConfig,
        runner: TrialRunner,
        accumulator: ScenarioAccumulator,
        *,
        cpu_threads: int,
        host_ip: str,
        sleep: Callable[[float], None] = time.sleep,
        server_factory: Optional[Callable[[], NetworkServer]] = None,
    ):
        self.config = config
        self.runner = runner
        self.accumulator = accumulator
        self.cpu_threads = cpu_threads
        self.host_ip = host_ip
        self._sleep = sleep
        self._server_factory = server_factory or (
            lambda: NetworkServer(settle_seconds=config.server_settle_seconds, sleep=sleep)
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def thread_counts(self) -> List[int]:
        """Single-threaded first, then all cores; a 1-core host runs once."""
        counts: List[int] = []
        for threads in (1, self.cpu_threads):
            if threads not in counts:
                counts.append(threads)
        return counts

    def cpu_command(self, threads: int) -> List[str]:
        return [
            "sysbench", "cpu",
            f"--threads={threads}",
            f"--cpu-max-prime={self.config.cpu_max_prime}",
            "run",
        ]

    def memory_command(self, threads: int) -> List[str]:
        return [
            "sysbench", "memory",
            f"--threads={threads}",
            f"--memory-block-size={self.config.mem_block_size}",
            f"--memory-total-size={self.config.mem_total_size}",
            "run",
        ]

    def fileio_command(self, action: str, file_dir: Optional[str] = None) -> List[str]:
        command = ["sysbench", "fileio", f"--file-total-size={self.config.file_total_size}"]
        if file_dir:
            command.append(f"--file-dir={file_dir}")
        if action == "run":
            command += [
                f"--file-test-mode={self.config.file_test_mode}",
                f"--threads={self.config.file_threads}",
                f"--time={self.config.file_test_time}",
            ]
        command.append(action)
        return command

    def container_internal_fileio_command(self) -> List[str]:
        """prepare, run and cleanup in one shell, since nothing persists between throwaway containers."""
        prepare = shlex.join(self.fileio_command("prepare"))
        run = shlex.join(self.fileio_command("run"))
        cleanup = shlex.join(self.fileio_command("cleanup"))
        script = f"{prepare} > /dev/null 2>&1 && {run} && {cleanup} > /dev/null 2>&1"
        return ["sh", "-c", script]

    def iperf_client_command(self, target: str) -> List[str]:
        return ["iperf3", "-c", target, "-t", str(self.config.iperf_time)]

    # ------------------------------------------------------------------
    # Matrix
    # ------------------------------------------------------------------

    def run(self, subsystems: Optional[Iterable[Subsystem]] = None) -> ScenarioAccumulator:
        selected = set(subsystems) if subsystems is not None else set(self.config.subsystems)
        steps = {
            Subsystem.CPU: self.run_cpu,
            Subsystem.MEMORY: self.run_memory,
            Subsystem.DISK_IO: self.run_disk_io,
            Subsystem.NETWORK: self.run_network,
        }
        for subsystem in Subsystem:
            if subsystem in selected:
                steps[subsystem]()
        return self.accumulator

    def run_cpu(self) -> None:
        logger.info("--- Running CPU Benchmark ---")
        for environment in SUBSYSTEM_ENVIRONMENTS[Subsystem.CPU]:
            for threads in self.thread_counts():
                self._run_single_metric(
                    ScenarioId.cpu(environment, threads),
                    self.cpu_command(threads),
                    containerized=environment.containerized,
                    parser=parse_sysbench_cpu,
                    unit="events/sec",
                )
        logger.info("--- CPU Benchmark Complete ---")

    def run_memory(self) -> None:
        logger.info("--- Running Memory Benchmark ---")
        for environment in SUBSYSTEM_ENVIRONMENTS[Subsystem.MEMORY]:
            for threads in self.thread_counts():
                self._run_single_metric(
                    ScenarioId.memory(environment, threads),
                    self.memory_command(threads),
                    containerized=environment.containerized,
                    parser=parse_sysbench_memory,
                    unit="MiB/sec",
                )
        logger.info("--- Memory Benchmark Complete ---")

    def run_disk_io(self) -> None:
        logger.info("--- Running Disk I/O Benchmark ---")
        runner = self.runner

        self._run_disk_environment(
            Environment.HOST,
            prepare=lambda: runner.run(self.fileio_command("prepare")),
            run=lambda: runner.run(self.fileio_command("run")),
            cleanup=lambda: runner.run(self.fileio_command("cleanup")),
        )

        self._run_disk_environment(
            Environment.CONTAINER_INTERNAL,
            run=lambda: runner.run(self.container_internal_fileio_command(), containerized=True),
        )

        volume_dir = Path(self.config.test_vol_dir)
        mount = self.config.container_mount_point
        volume = VolumeMount(volume_dir, mount)

        def prepare_volume() -> None:
            try:
                volume_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise TrialExecutionError(
                    ["mkdir", str(volume_dir)], None, message=f"Could not create {volume_dir}: {exc}"
                ) from exc
            runner.run(self.fileio_command("prepare", mount), containerized=True, volume=volume)

        def cleanup_volume() -> None:
            try:
                runner.run(self.fileio_command("cleanup", mount), containerized=True, volume=volume)
            finally:
                shutil.rmtree(volume_dir, ignore_errors=True)

        self._run_disk_environment(
            Environment.CONTAINER_VOLUME_MOUNT,
            prepare=prepare_volume,
            run=lambda: runner.run(self.fileio_command("run", mount), containerized=True, volume=volume),
            cleanup=cleanup_volume,
        )
        logger.info("--- Disk I/O Benchmark Complete ---")

    def run_network(self) -> None:
        logger.info("--- Running Network Benchmark ---")
        plan = (
            (Environment.HOST, self.host_ip, False),
            (Environment.CONTAINER_BRIDGE, self.host_ip, False),
            (Environment.CONTAINER_HOST_NETWORK, LOOPBACK_IP, True),
        )
        scenarios = [ScenarioId.network(environment) for environment, _, _ in plan]

        logger.info("Starting iperf3 server on host in background...")
        server = self._server_factory()
        try:
            server.start()
        except NetworkServerError as exc:
            if self.config.fail_fast:
                raise
            logger.error("Skipping network scenarios: %s", exc.message)
            self._mark_skipped(scenarios, exc.message)
            return

        try:
            for (environment, target, host_network), scenario in zip(plan, scenarios):
                self._run_single_metric(
                    scenario,
                    self.iperf_client_command(target),
                    containerized=environment.containerized,
                    host_network=host_network,
                    parser=parse_iperf3,
                    unit="Gbits/sec",
                )
        finally:
            server.stop()
        logger.info("--- Network Benchmark Complete ---")

    # ------------------------------------------------------------------
    # Trial loop
    # ------------------------------------------------------------------

    def _run_single_metric(
        self,
        scenario: ScenarioId,
        command: Sequence[str],
        *,
        containerized: bool,
        parser: Callable[[str], Optional[float]],
        unit: str,
        host_network: bool = False,
    ) -> None:
        self.accumulator.begin(scenario)
        logger.info("Running %s tests...", scenario.key)

        def invoke(_run_index: int) -> str:
            return self.runner.run(command, containerized=containerized, host_network=host_network)

        self._run_trials(
            [scenario],
            invoke,
            lambda output: [(scenario, parser(output), "Result:")],
            unit,
        )

    def _run_disk_environment(
        self,
        environment: Environment,
        *,
        run: Callable[[], str],
        prepare: Optional[Callable[[], object]] = None,
        cleanup: Optional[Callable[[], object]] = None,
    ) -> None:
        scenarios = [ScenarioId.disk(environment, metric) for metric in DiskMetric]
        for scenario in scenarios:
            self.accumulator.begin(scenario)
        logger.info("Running Disk %s tests...", environment.value)

        if prepare is not None:
            try:
                prepare()
            except (TrialExecutionError, OSError) as exc:
                if self.config.fail_fast:
                    raise
                reason = f"prepare failed: {exc}"
                logger.error("  %s", reason)
                self._mark_skipped(scenarios, reason)
                self._best_effort(cleanup, f"disk {environment.value} cleanup")
                return

        slug = FILEIO_LOG_SLUGS[environment]

        def invoke(run_index: int) -> str:
            output = run()
            self._write_fileio_log(slug, run_index, output)
            return output

        def extract(output: str) -> Extraction:
            return [
                (ScenarioId.disk(environment, metric), parse_sysbench_fileio(output, metric), metric.label)
                for metric in DiskMetric
            ]

        try:
            self._run_trials(scenarios, invoke, extract, unit="")
        finally:
            self._best_effort(cleanup, f"disk {environment.value} cleanup")

    def _run_trials(
        self,
        scenarios: Sequence[ScenarioId],
        invoke: Callable[[int], str],
        extract: Callable[[str], Extraction],
        unit: str,
    ) -> None:
        num_runs = self.config.num_runs
        for run_index in range(1, num_runs + 1):
            logger.info("  Run %d/%d...", run_index, num_runs)
            try:
                output = invoke(run_index)
            except TrialExecutionError as exc:
                if self.config.fail_fast:
                    raise
                logger.error("    Trial failed: %s", exc.message)
                for scenario in scenarios:
                    self.accumulator.record_failure(scenario, exc.message)
            else:
                for scenario, value, label in extract(output):
                    self._record(scenario, value, label, unit)

            if run_index < num_runs:
                self._sleep(self.config.trial_pause_seconds)

    def _record(self, scenario: ScenarioId, value: Optional[float], label: str, unit: str) -> None:
        if value is None:
            if self.config.count_parse_failures:
                logger.warning("    %s unparseable output for %s, counted as %s", label, scenario.key,
                               PARSE_FAILURE_SENTINEL)
                self.accumulator.add_sample(scenario, PARSE_FAILURE_SENTINEL)
            else:
                logger.warning("    %s unparseable output for %s", label, scenario.key)
                self.accumulator.record_failure(scenario, "unparseable output")
            return
        self.accumulator.add_sample(scenario, value)
        logger.info("    %s %s %s", label, value, unit)

    def _mark_skipped(self, scenarios: Sequence[ScenarioId], reason: str) -> None:
        for scenario in scenarios:
            for _ in range(self.config.num_runs):
                self.accumulator.record_failure(scenario, reason)

    def _write_fileio_log(self, slug: str, run_index: int, output: str) -> None:
        log_dir = Path(self.config.log_dir)
        path = log_dir / f"sysbench_fileio_{slug}_run{run_index}.log"
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(output)
        except OSError as exc:
            logger.warning("Could not write %s: %s", path, exc)

    @staticmethod
    def _best_effort(action: Optional[Callable[[], object]], description: str) -> None:
        if action is None:
            return
        try:
            action()
        except (TrialExecutionError, OSError) as exc:
            logger.warning("%s failed (ignored): %s", description.capitalize(), exc)
