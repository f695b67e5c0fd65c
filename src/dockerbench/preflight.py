"""
Environment preflight checks.

Verifies that every external tool the selected subsystems need is on PATH,
that the benchmark image already exists locally and that the host has a
routable IPv4 address. Any failure aborts before a single trial runs.
"""

from __future__ import annotations

import ipaddress
import logging
import shutil
import socket
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import psutil

from dockerbench.config import BenchmarkConfig
from dockerbench.exceptions import PreflightError
from dockerbench.runner import TrialRunner
from dockerbench.scenarios import Subsystem

logger = logging.getLogger(__name__)

_SYSBENCH_SUBSYSTEMS = {Subsystem.CPU, Subsystem.MEMORY, Subsystem.DISK_IO}


@dataclass
class ToolStatus:
    name: str
    path: Optional[str]

    @property
    def found(self) -> bool:
        return self.path is not None


@dataclass
class PreflightReport:
    """Facts discovered about the host before the run starts."""

    host_ip: str
    cpu_threads: int
    tools: Dict[str, str] = field(default_factory=dict)


def required_tools(subsystems: Iterable[Subsystem]) -> List[str]:
    """Tools needed for the selected subsystems, in check order."""
    selected = set(subsystems)
    tools = ["docker"]
    if selected & _SYSBENCH_SUBSYSTEMS:
        tools.append("sysbench")
    if Subsystem.NETWORK in selected:
        tools.append("iperf3")
    return tools


def discover_host_ip() -> Optional[str]:
    """Return the first non-loopback IPv4 address of this host."""
    for interface, addresses in psutil.net_if_addrs().items():
        for address in addresses:
            if address.family != socket.AF_INET:
                continue
            try:
                ip = ipaddress.IPv4Address(address.address)
            except ValueError:
                continue
            if ip.is_loopback or ip.is_link_local or ip.is_unspecified:
                continue
            logger.debug("Host IP %s found on interface %s", ip, interface)
            return str(ip)
    return None


def detect_cpu_threads() -> int:
    return psutil.cpu_count(logical=True) or 1


class Preflight:
    """Runs the environment checks for a benchmark configuration."""

    def __init__(
        self,
        config: BenchmarkConfig,
        runner: TrialRunner,
        *,
        which: Callable[[str], Optional[str]] = shutil.which,
        subsystems: Optional[Sequence[Subsystem]] = None,
        host_ip_resolver: Optional[Callable[[], Optional[str]]] = None,
        cpu_counter: Optional[Callable[[], int]] = None,
    ):
        self.config = config
        self.runner = runner
        self.subsystems = tuple(subsystems) if subsystems is not None else config.subsystems
        self._which = which
        self._host_ip_resolver = host_ip_resolver
        self._cpu_counter = cpu_counter

    def check_tools(self) -> List[ToolStatus]:
        """Status of every required tool; never raises."""
        return [ToolStatus(name, self._which(name)) for name in required_tools(self.subsystems)]

    def resolve_host_ip(self) -> Optional[str]:
        return self.config.host_ip or (self._host_ip_resolver or discover_host_ip)()

    def resolve_cpu_threads(self) -> int:
        return self.config.cpu_threads or (self._cpu_counter or detect_cpu_threads)() or 1

    def run(self) -> PreflightReport:
        """
        Perform all checks.

        Raises:
            PreflightError: On the first missing dependency
        """
        logger.info("--- Performing Sanity Checks ---")
        tools: Dict[str, str] = {}
        for status in self.check_tools():
            if not status.found:
                raise PreflightError(
                    f"Required command '{status.name}' not found. Please install it.",
                    missing=status.name,
                )
            tools[status.name] = status.path

        image = self.config.docker_image
        if not self.runner.image_exists(image):
            raise PreflightError(
                f"Docker image '{image}' not found. Please build it using the provided Dockerfile.",
                missing=image,
            )

        host_ip = self.resolve_host_ip()
        if not host_ip:
            raise PreflightError("Could not determine Host IP address.", missing="host_ip")

        cpu_threads = self.resolve_cpu_threads()
        logger.info("Using Host IP: %s for network tests.", host_ip)
        logger.info("Using %d threads for multi-threaded tests.", cpu_threads)
        logger.info("Number of runs per test: %d", self.config.num_runs)
        logger.info("--- Checks Complete ---")
        return PreflightReport(host_ip=host_ip, cpu_threads=cpu_threads, tools=tools)
