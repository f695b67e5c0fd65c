"""Background iperf3 listener for the network scenarios."""

from __future__ import annotations

import atexit
import contextlib
import logging
import shutil
import subprocess
import time
from typing import Callable, Optional

from dockerbench.exceptions import NetworkServerError
from dockerbench.utils.safe_subprocess import UnsafeSubprocessError, resolve_executable

logger = logging.getLogger(__name__)


class NetworkServer:
    """
    Owns the ``iperf3 -s`` listener process.

    ``start`` registers ``stop`` with ``atexit`` so the listener is terminated
    even when the orchestrator exits through an exception or ``sys.exit``.
    ``stop`` is idempotent; the process is terminated exactly once.
    """

    def __init__(
        self,
        executable: str = "iperf3",
        settle_seconds: float = 3.0,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
        sleep: Callable[[float], None] = time.sleep,
        which: Callable[[str], Optional[str]] = shutil.which,
    ):
        self.executable = executable
        self.settle_seconds = settle_seconds
        self._popen = popen
        self._sleep = sleep
        self._which = which
        self._process: Optional[subprocess.Popen] = None
        self._stopped = False

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process is not None else None

    @property
    def running(self) -> bool:
        return self._process is not None and not self._stopped and self._process.poll() is None

    def start(self) -> "NetworkServer":
        if self._process is not None:
            raise NetworkServerError("iperf3 server already started")

        try:
            command = [resolve_executable(self.executable, which=self._which), "-s"]
            self._process = self._popen(
                command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except (OSError, UnsafeSubprocessError) as exc:
            raise NetworkServerError(f"Failed to start iperf3 server: {exc}") from exc

        atexit.register(self.stop)
        logger.info("Started iperf3 server (pid=%s), waiting %.1fs for it to settle", self.pid, self.settle_seconds)
        self._sleep(self.settle_seconds)

        rc = self._process.poll()
        if rc is not None:
            self.stop()
            raise NetworkServerError(f"iperf3 server exited during startup (exit={rc})")
        return self

    def stop(self) -> None:
        if self._stopped or self._process is None:
            return
        self._stopped = True
        atexit.unregister(self.stop)

        proc = self._process
        logger.info("Stopping iperf3 server (pid=%s)...", proc.pid)
        with contextlib.suppress(ProcessLookupError, OSError):
            if proc.poll() is None:
                proc.terminate()
                try:
                    proc.wait(timeout=5)
                except subprocess.TimeoutExpired:
                    proc.kill()
                    proc.wait()

    def __enter__(self) -> "NetworkServer":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
