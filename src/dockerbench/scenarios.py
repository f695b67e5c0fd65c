"""
Scenario identifiers for the benchmark matrix.

A scenario is one (subsystem, environment, variant) combination that is
benchmarked independently. Identifiers are plain frozen dataclasses so they
can key the accumulator directly instead of hand-built strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet


class Subsystem(str, Enum):
    """Benchmarked subsystems, declared in execution order."""

    CPU = "cpu"
    MEMORY = "memory"
    DISK_IO = "disk_io"
    NETWORK = "network"


class Environment(str, Enum):
    """Where a benchmark command executes."""

    HOST = "host"
    CONTAINER_INTERNAL = "container_internal"  # throwaway container, own filesystem
    CONTAINER_BRIDGE = "container_bridge"
    CONTAINER_HOST_NETWORK = "container_host_network"
    CONTAINER_VOLUME_MOUNT = "container_volume_mount"

    @property
    def containerized(self) -> bool:
        return self is not Environment.HOST


class DiskMetric(str, Enum):
    """Disk I/O metrics read from one ``sysbench fileio run`` report."""

    READS = "reads"
    WRITES = "writes"
    READ_MIBPS = "read_mibps"
    WRITE_MIBPS = "write_mibps"

    @property
    def label(self) -> str:
        """Text that identifies the metric's line in sysbench output."""
        return _DISK_METRIC_LABELS[self]


_DISK_METRIC_LABELS: Dict[DiskMetric, str] = {
    DiskMetric.READS: "reads/s",
    DiskMetric.WRITES: "writes/s",
    DiskMetric.READ_MIBPS: "read, MiB/s:",
    DiskMetric.WRITE_MIBPS: "written, MiB/s:",
}

SUBSYSTEM_ENVIRONMENTS: Dict[Subsystem, tuple[Environment, ...]] = {
    Subsystem.CPU: (Environment.HOST, Environment.CONTAINER_INTERNAL),
    Subsystem.MEMORY: (Environment.HOST, Environment.CONTAINER_INTERNAL),
    Subsystem.DISK_IO: (
        Environment.HOST,
        Environment.CONTAINER_INTERNAL,
        Environment.CONTAINER_VOLUME_MOUNT,
    ),
    Subsystem.NETWORK: (
        Environment.HOST,
        Environment.CONTAINER_BRIDGE,
        Environment.CONTAINER_HOST_NETWORK,
    ),
}

_ALLOWED: Dict[Subsystem, FrozenSet[Environment]] = {
    subsystem: frozenset(envs) for subsystem, envs in SUBSYSTEM_ENVIRONMENTS.items()
}


@dataclass(frozen=True)
class ScenarioId:
    """Composite key of subsystem, environment and variant."""

    subsystem: Subsystem
    environment: Environment
    variant: str = ""

    def __post_init__(self) -> None:
        if self.environment not in _ALLOWED[self.subsystem]:
            raise ValueError(
                f"Environment '{self.environment.value}' is not benchmarked "
                f"for subsystem '{self.subsystem.value}'"
            )

    @property
    def key(self) -> str:
        parts = [self.subsystem.value, self.environment.value]
        if self.variant:
            parts.append(self.variant)
        return "/".join(parts)

    def __str__(self) -> str:
        return self.key

    @classmethod
    def cpu(cls, environment: Environment, threads: int) -> "ScenarioId":
        return cls(Subsystem.CPU, environment, f"{threads}T")

    @classmethod
    def memory(cls, environment: Environment, threads: int) -> "ScenarioId":
        return cls(Subsystem.MEMORY, environment, f"{threads}T")

    @classmethod
    def disk(cls, environment: Environment, metric: DiskMetric) -> "ScenarioId":
        return cls(Subsystem.DISK_IO, environment, metric.value)

    @classmethod
    def network(cls, environment: Environment) -> "ScenarioId":
        return cls(Subsystem.NETWORK, environment)
