"""Hardened helpers for invoking the external benchmark tools."""

from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Collection, Sequence
from pathlib import Path
from subprocess import CompletedProcess
from typing import Any, Callable, Optional

__all__ = [
    "BENCHMARK_EXECUTABLES",
    "UnsafeSubprocessError",
    "normalize_command",
    "resolve_executable",
    "run_validated_command",
]

BENCHMARK_EXECUTABLES = frozenset({"sysbench", "docker", "iperf3"})


class UnsafeSubprocessError(ValueError):
    """Raised when a subprocess command fails validation."""


def normalize_command(command: Sequence[Any]) -> tuple[str, ...]:
    """Return an immutable command tuple; numbers and paths are stringified."""

    if not command:
        raise UnsafeSubprocessError("Command must contain at least one component.")

    normalized: list[str] = []
    for index, part in enumerate(command):
        if isinstance(part, (int, float)) and not isinstance(part, bool):
            part = str(part)
        elif isinstance(part, os.PathLike):
            part = os.fspath(part)
        if not isinstance(part, str):
            raise UnsafeSubprocessError(
                f"Command component at position {index} is not a string."
            )
        if not part:
            raise UnsafeSubprocessError(
                f"Command component at position {index} must not be empty."
            )
        if "\x00" in part:
            raise UnsafeSubprocessError(
                f"Command component at position {index} contains NUL bytes."
            )
        normalized.append(part)

    return tuple(normalized)


def resolve_executable(
    name: str,
    allowed_executables: Collection[str] = BENCHMARK_EXECUTABLES,
    *,
    which: Optional[Callable[[str], Optional[str]]] = None,
) -> str:
    """Resolve an allow-listed executable name to an absolute path."""

    if os.sep in name or (os.altsep and os.altsep in name):
        candidate = Path(name)
        if candidate.name not in allowed_executables:
            raise UnsafeSubprocessError(f"Executable '{name}' is not permitted for execution.")
        if not candidate.is_absolute() or not candidate.is_file():
            raise UnsafeSubprocessError(f"Executable path '{name}' does not exist.")
        return os.fspath(candidate)

    if name not in allowed_executables:
        raise UnsafeSubprocessError(f"Executable '{name}' is not permitted for execution.")

    located = (which or shutil.which)(name)
    if not located:
        raise UnsafeSubprocessError(f"Executable '{name}' was not found on PATH.")
    return located


def run_validated_command(
    command: Sequence[Any],
    *,
    allowed_executables: Collection[str] = BENCHMARK_EXECUTABLES,
    capture_output: bool = True,
    text: bool = True,
) -> CompletedProcess[Any]:
    """Execute a validated command with ``shell=False`` enforced.

    The call blocks until the tool exits; no timeout is applied because the
    benchmark tools bound their own run time (``--time``, ``-t``).

    Args:
        command: Candidate command sequence to execute.
        allowed_executables: Explicit allow-list of executable basenames.
        capture_output: Capture stdout/stderr when set.
        text: Request text-mode streams when set.
    """

    normalized = list(normalize_command(command))
    normalized[0] = resolve_executable(normalized[0], allowed_executables)

    return subprocess.run(
        normalized,
        check=False,
        shell=False,
        capture_output=capture_output,
        text=text,
        errors="replace" if text else None,
    )
