"""Trial runner: execute one benchmark command on the host or in a container."""

from __future__ import annotations

import logging
import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from subprocess import CompletedProcess
from typing import Any, Callable, List, Optional, Sequence

from dockerbench.exceptions import TrialExecutionError
from dockerbench.utils.safe_subprocess import UnsafeSubprocessError, run_validated_command

logger = logging.getLogger(__name__)

Executor = Callable[[Sequence[str]], CompletedProcess]


@dataclass(frozen=True)
class VolumeMount:
    """Host directory bind-mounted into the benchmark container."""

    source: Path
    target: str = "/test"

    def as_docker_arg(self) -> str:
        return f"{os.path.abspath(self.source)}:{self.target}"


def _default_executor(command: Sequence[str]) -> CompletedProcess:
    return run_validated_command(command, capture_output=True, text=True)


class TrialRunner:
    """
    Runs exactly one external command per call and returns its stdout.

    Host commands run as direct child processes. Containerized commands run
    in a throwaway ``docker run --rm`` instance of the benchmark image,
    optionally with a bind-mounted volume or the host's network namespace.
    """

    def __init__(self, image: str, executor: Optional[Executor] = None):
        self.image = image
        self._executor = executor or _default_executor

    def build_command(
        self,
        command: Sequence[Any],
        *,
        containerized: bool,
        volume: Optional[VolumeMount] = None,
        host_network: bool = False,
    ) -> List[str]:
        """Return the argv for ``command`` in the requested environment."""
        argv = [str(part) for part in command]
        if not containerized:
            if volume is not None or host_network:
                raise ValueError("Volume mounts and host networking only apply to containers")
            return argv

        docker = ["docker", "run", "--rm"]
        if host_network:
            docker += ["--network", "host"]
        if volume is not None:
            docker += ["-v", volume.as_docker_arg()]
        return docker + [self.image] + argv

    def execute(self, argv: Sequence[str]) -> CompletedProcess:
        logger.debug("Executing: %s", shlex.join(argv))
        try:
            return self._executor(argv)
        except (OSError, UnsafeSubprocessError, UnicodeDecodeError) as exc:
            raise TrialExecutionError(argv, None, message=f"Could not execute '{argv[0]}': {exc}") from exc

    def run(
        self,
        command: Sequence[Any],
        *,
        containerized: bool = False,
        volume: Optional[VolumeMount] = None,
        host_network: bool = False,
    ) -> str:
        """
        Execute one trial command and return its captured standard output.

        Raises:
            TrialExecutionError: The process could not start or exited non-zero
        """
        argv = self.build_command(
            command, containerized=containerized, volume=volume, host_network=host_network
        )
        result = self.execute(argv)
        if result.returncode != 0:
            raise TrialExecutionError(argv, result.returncode, result.stderr or "")
        return result.stdout or ""

    def image_exists(self, image: Optional[str] = None) -> bool:
        """Check whether the benchmark image is present in the local image store."""
        argv = ["docker", "image", "inspect", image or self.image]
        try:
            result = self.execute(argv)
        except TrialExecutionError as exc:
            logger.debug("Image inspection failed: %s", exc)
            return False
        return result.returncode == 0
