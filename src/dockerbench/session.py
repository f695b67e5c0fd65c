"""One complete benchmark run: preflight, matrix, report."""

from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from dockerbench.accumulator import ScenarioAccumulator
from dockerbench.config import BenchmarkConfig
from dockerbench.driver import BenchmarkMatrixDriver
from dockerbench.network import NetworkServer
from dockerbench.preflight import Preflight, PreflightReport
from dockerbench.report import ReportRenderer
from dockerbench.runner import TrialRunner
from dockerbench.scenarios import Subsystem

logger = logging.getLogger(__name__)


@dataclass
class SessionResult:
    accumulator: ScenarioAccumulator
    preflight: PreflightReport
    report: str


def run_session(
    config: BenchmarkConfig,
    *,
    runner: Optional[TrialRunner] = None,
    which: Callable[[str], Optional[str]] = shutil.which,
    server_factory: Optional[Callable[[], NetworkServer]] = None,
    sleep: Callable[[float], None] = time.sleep,
    subsystems: Optional[Sequence[Subsystem]] = None,
    preflight: Optional[Preflight] = None,
) -> SessionResult:
    """
    Run preflight, drive the selected subsystems and render the report.

    Raises:
        PreflightError: Before any trial runs, if the environment is not ready
        TrialExecutionError: Only when ``config.fail_fast`` is set
    """
    runner = runner or TrialRunner(config.docker_image)
    selected = tuple(subsystems) if subsystems is not None else config.subsystems

    preflight = preflight or Preflight(config, runner, which=which, subsystems=selected)
    facts = preflight.run()

    accumulator = ScenarioAccumulator()
    driver = BenchmarkMatrixDriver(
        config,
        runner,
        accumulator,
        cpu_threads=facts.cpu_threads,
        host_ip=facts.host_ip,
        sleep=sleep,
        server_factory=server_factory,
    )
    driver.run(selected)

    renderer = ReportRenderer(
        accumulator,
        cpu_threads=facts.cpu_threads,
        num_runs=config.num_runs,
        file_test_mode=config.file_test_mode,
        precision=config.precision,
        subsystems=selected,
    )
    failed = len(accumulator.failed())
    if failed:
        logger.warning("%d scenario(s) had failed trials; see the failures table", failed)
    return SessionResult(accumulator=accumulator, preflight=facts, report=renderer.render())
