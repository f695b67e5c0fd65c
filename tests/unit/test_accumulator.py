from __future__ import annotations

import math

import pytest

from dockerbench.accumulator import ScenarioAccumulator
from dockerbench.scenarios import DiskMetric, Environment, ScenarioId, Subsystem

CPU_HOST_1T = ScenarioId.cpu(Environment.HOST, 1)


def test_mean_of_samples() -> None:
    acc = ScenarioAccumulator()
    acc.add_sample(CPU_HOST_1T, 100.0)
    acc.add_sample(CPU_HOST_1T, 200.0)

    assert acc.mean(CPU_HOST_1T) == 150.0
    entry = acc.get(CPU_HOST_1T)
    assert entry.total == 300.0
    assert entry.count == 2


def test_unknown_scenario_has_no_mean() -> None:
    acc = ScenarioAccumulator()
    assert acc.mean(CPU_HOST_1T) is None
    assert CPU_HOST_1T not in acc


def test_begun_scenario_without_samples_is_unavailable() -> None:
    acc = ScenarioAccumulator()
    acc.begin(CPU_HOST_1T)
    assert CPU_HOST_1T in acc
    assert acc.mean(CPU_HOST_1T) is None


def test_zero_is_a_real_sample() -> None:
    acc = ScenarioAccumulator()
    acc.add_sample(CPU_HOST_1T, 0.0)
    assert acc.mean(CPU_HOST_1T) == 0.0


@pytest.mark.parametrize("value", (-1.0, math.nan))
def test_invalid_samples_rejected(value: float) -> None:
    acc = ScenarioAccumulator()
    with pytest.raises(ValueError):
        acc.add_sample(CPU_HOST_1T, value)
    assert acc.get(CPU_HOST_1T) is None


def test_failures_do_not_enter_mean() -> None:
    acc = ScenarioAccumulator()
    acc.add_sample(CPU_HOST_1T, 120.0)
    acc.record_failure(CPU_HOST_1T, "'docker' exited with status 125")

    entry = acc.get(CPU_HOST_1T)
    assert acc.mean(CPU_HOST_1T) == 120.0
    assert entry.attempts == 2
    assert acc.failed() == [(CPU_HOST_1T, entry)]


def test_iteration_follows_insertion_order() -> None:
    acc = ScenarioAccumulator()
    order = [
        ScenarioId.network(Environment.CONTAINER_BRIDGE),
        CPU_HOST_1T,
        ScenarioId.disk(Environment.HOST, DiskMetric.READS),
    ]
    for scenario in order:
        acc.begin(scenario)
    acc.begin(CPU_HOST_1T)

    assert list(acc) == order
    assert [sid for sid, _ in acc.items()] == order
    assert len(acc) == 3


def test_scenario_keys_are_distinct() -> None:
    assert ScenarioId.cpu(Environment.HOST, 1).key == "cpu/host/1T"
    assert ScenarioId.memory(Environment.CONTAINER_INTERNAL, 8).key == "memory/container_internal/8T"
    assert ScenarioId.disk(Environment.CONTAINER_VOLUME_MOUNT, DiskMetric.WRITE_MIBPS).key == (
        "disk_io/container_volume_mount/write_mibps"
    )
    assert str(ScenarioId.network(Environment.HOST)) == "network/host"


def test_scenario_rejects_unbenchmarked_environment() -> None:
    with pytest.raises(ValueError):
        ScenarioId(Subsystem.CPU, Environment.CONTAINER_BRIDGE, "1T")
