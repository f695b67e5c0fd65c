"""Extract single numeric metrics from sysbench and iperf3 text reports.

Every parser is a pure ``str -> Optional[float]`` transform. ``None`` means
the expected line was absent or unreadable; callers decide whether that is a
recorded failure or the legacy zero sentinel.
"""

from __future__ import annotations

import math
import re
from typing import Optional

from dockerbench.scenarios import DiskMetric

__all__ = [
    "PARSE_FAILURE_SENTINEL",
    "parse_iperf3",
    "parse_or_sentinel",
    "parse_sysbench_cpu",
    "parse_sysbench_fileio",
    "parse_sysbench_memory",
]

PARSE_FAILURE_SENTINEL = 0.0

_MIB_PER_SEC = re.compile(r"(\d+\.\d+) MiB/sec")
_BITRATE = re.compile(r"(\d+(?:\.\d+)?)\s+(\S*bits/sec)")

# Divisor that converts each iperf3 unit to Gbits/sec.
_GBIT_DIVISORS = {
    "Gbits/sec": 1.0,
    "Mbits/sec": 1000.0,
}


def _to_float(token: str) -> Optional[float]:
    try:
        value = float(token)
    except ValueError:
        return None
    if math.isnan(value) or math.isinf(value) or value < 0:
        return None
    return value


def _trailing_field(line: str) -> Optional[float]:
    fields = line.split()
    if not fields:
        return None
    return _to_float(fields[-1])


def parse_sysbench_cpu(output: str) -> Optional[float]:
    """Return events per second from ``sysbench cpu run`` output."""
    for line in output.splitlines():
        if "events per second:" in line:
            return _trailing_field(line)
    return None


def parse_sysbench_memory(output: str) -> Optional[float]:
    """Return MiB/sec from the ``(<value> MiB/sec)`` part of ``sysbench memory run``."""
    for line in output.splitlines():
        if "MiB/sec)" not in line:
            continue
        match = _MIB_PER_SEC.search(line)
        if match:
            return _to_float(match.group(1))
    return None


def parse_sysbench_fileio(output: str, metric: DiskMetric) -> Optional[float]:
    """Return the trailing value on the first line containing ``metric``'s label."""
    label = metric.label
    for line in output.splitlines():
        if label in line:
            return _trailing_field(line)
    return None


def parse_iperf3(output: str) -> Optional[float]:
    """Return the summary bitrate of an ``iperf3 -c`` run in Gbits/sec.

    iperf3 prints a sender and a receiver summary; the last one wins. Real
    summary lines end with the role word (``... 9.38 Gbits/sec  receiver``),
    so the bitrate is the last ``<number> <unit>`` pair on the line rather
    than strictly the final two fields.
    """
    summary = None
    for line in output.splitlines():
        if "sender" in line or "receiver" in line:
            summary = line
    if summary is None:
        return None

    matches = _BITRATE.findall(summary)
    if not matches:
        return None
    bitrate, unit = matches[-1]
    divisor = _GBIT_DIVISORS.get(unit)
    if divisor is None:
        return None
    value = _to_float(bitrate)
    if value is None:
        return None
    return value / divisor


def parse_or_sentinel(value: Optional[float]) -> float:
    """Collapse a failed parse into the legacy zero sentinel."""
    return PARSE_FAILURE_SENTINEL if value is None else value
