"""Global pytest configuration for dockerbench.

Ensures the ``src`` tree is importable regardless of how the repository is
cloned, and provides the fakes shared by the unit tests.
"""

import sys
from pathlib import Path
from subprocess import CompletedProcess
from typing import Callable, Dict, List, Optional, Sequence

import pytest

# Add the src directory to the Python path so imports can work correctly
# without needing to add the 'src.' prefix to every import
project_root = Path(__file__).parent.parent
src_dir = project_root / 'src'

# Make the 'dockerbench' package directly importable
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from dockerbench.config import BenchmarkConfig  # noqa: E402
from dockerbench.runner import TrialRunner  # noqa: E402


class RecordingExecutor:
    """Executor that records every argv and answers from a script."""

    def __init__(self, respond: Optional[Callable[[List[str]], CompletedProcess]] = None):
        self.calls: List[List[str]] = []
        self._respond = respond

    def __call__(self, argv: Sequence[str]) -> CompletedProcess:
        argv = list(argv)
        self.calls.append(argv)
        if self._respond is not None:
            return self._respond(argv)
        return CompletedProcess(argv, 0, stdout="", stderr="")


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., BenchmarkConfig]:
    """Config factory with fast pacing and artifacts under ``tmp_path``."""

    def _make(**overrides) -> BenchmarkConfig:
        values: Dict[str, object] = {
            "num_runs": 2,
            "trial_pause_seconds": 0,
            "server_settle_seconds": 0,
            "log_dir": tmp_path / "logs",
            "test_vol_dir": tmp_path / "vol",
            "host_ip": "192.168.1.10",
            "cpu_threads": 4,
        }
        values.update(overrides)
        return BenchmarkConfig(**values)

    return _make


@pytest.fixture
def recording_runner() -> Callable[..., TrialRunner]:
    def _make(respond=None, image: str = "sysbench-test") -> TrialRunner:
        return TrialRunner(image, executor=RecordingExecutor(respond))

    return _make
