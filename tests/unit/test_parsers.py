from __future__ import annotations

import pytest

from dockerbench.parsers import (
    PARSE_FAILURE_SENTINEL,
    parse_iperf3,
    parse_or_sentinel,
    parse_sysbench_cpu,
    parse_sysbench_fileio,
    parse_sysbench_memory,
)
from dockerbench.scenarios import DiskMetric

SYSBENCH_CPU = """\
sysbench 1.0.20 (using system LuaJIT 2.1.0-beta3)

Running the test with following options:
Number of threads: 1

Prime numbers limit: 20000

CPU speed:
    events per second:   512.34

General statistics:
    total time:                          10.0012s
    total number of events:              5124
"""

SYSBENCH_MEMORY = """\
Total operations: 10240 (11357.36 per second)

10240.00 MiB transferred (11357.36 MiB/sec)

General statistics:
    total time:                          0.9007s
"""

SYSBENCH_FILEIO = """\
File operations:
    reads/s:                      1500.25
    writes/s:                     1000.50
    fsyncs/s:                     3201.80

Throughput:
    read, MiB/s:                  23.44
    written, MiB/s:               15.63
"""

IPERF3_GBITS = """\
Connecting to host 192.168.1.10, port 5201
[  5] local 192.168.1.20 port 40000 connected to 192.168.1.10 port 5201
[ ID] Interval           Transfer     Bitrate         Retr
[  5]   0.00-10.00  sec  10.9 GBytes  9.40 Gbits/sec    0             sender
[  5]   0.00-10.04  sec  10.9 GBytes  2.30 Gbits/sec                  receiver

iperf Done.
"""


def test_cpu_events_per_second() -> None:
    assert parse_sysbench_cpu(SYSBENCH_CPU) == 512.34


def test_cpu_missing_line_returns_none() -> None:
    assert parse_sysbench_cpu("FATAL: unknown test\n") is None
    assert parse_sysbench_cpu("") is None


def test_cpu_uses_first_matching_line() -> None:
    output = "events per second: 10.0\nevents per second: 99.0\n"
    assert parse_sysbench_cpu(output) == 10.0


def test_cpu_non_numeric_value_returns_none() -> None:
    assert parse_sysbench_cpu("    events per second:   n/a\n") is None


def test_memory_throughput() -> None:
    assert parse_sysbench_memory(SYSBENCH_MEMORY) == 11357.36


def test_memory_requires_decimal_value() -> None:
    assert parse_sysbench_memory("10240 MiB transferred (11357 MiB/sec)\n") is None


@pytest.mark.parametrize(
    ("metric", "expected"),
    (
        (DiskMetric.READS, 1500.25),
        (DiskMetric.WRITES, 1000.50),
        (DiskMetric.READ_MIBPS, 23.44),
        (DiskMetric.WRITE_MIBPS, 15.63),
    ),
)
def test_fileio_metrics(metric: DiskMetric, expected: float) -> None:
    assert parse_sysbench_fileio(SYSBENCH_FILEIO, metric) == expected


def test_fileio_metric_absent() -> None:
    output = "File operations:\n    reads/s:   12.0\n"
    assert parse_sysbench_fileio(output, DiskMetric.WRITE_MIBPS) is None


def test_iperf3_gbits_passes_through_last_summary_line() -> None:
    assert parse_iperf3(IPERF3_GBITS) == 2.30


def test_iperf3_mbits_converted_to_gbits() -> None:
    output = "[  5]   0.00-10.00  sec   596 MBytes   500 Mbits/sec                  receiver\n"
    assert parse_iperf3(output) == pytest.approx(0.5)


def test_iperf3_bitrate_as_final_fields() -> None:
    output = "[SUM] sender 0.00-10.00 sec 11 GBytes 9.41 Gbits/sec\n"
    assert parse_iperf3(output) == 9.41


def test_iperf3_other_units_are_rejected() -> None:
    output = "[  5]   0.00-10.00  sec  1.2 MBytes  980 Kbits/sec   receiver\n"
    assert parse_iperf3(output) is None


def test_iperf3_without_summary_returns_none() -> None:
    assert parse_iperf3("iperf3: error - unable to connect to server\n") is None


def test_parse_or_sentinel() -> None:
    assert parse_or_sentinel(None) == PARSE_FAILURE_SENTINEL == 0.0
    assert parse_or_sentinel(1.5) == 1.5
    assert parse_or_sentinel(parse_iperf3("")) == 0.0
