from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from dockerbench.config import CONFIG_PATH_ENV, BenchmarkConfig, load_config
from dockerbench.exceptions import ConfigurationError
from dockerbench.scenarios import Subsystem


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)


def test_defaults_match_documented_values() -> None:
    config = load_config()

    assert config.num_runs == 3
    assert config.subsystems == tuple(Subsystem)
    assert config.docker_image == "sysbench-test"
    assert config.cpu_max_prime == 20000
    assert config.mem_total_size == "10G"
    assert config.mem_block_size == "1M"
    assert config.file_total_size == "2G"
    assert config.file_threads == 4
    assert config.file_test_mode == "rndrw"
    assert config.file_test_time == 30
    assert config.iperf_time == 10
    assert config.container_mount_point == "/test"
    assert config.fail_fast is False
    assert config.count_parse_failures is False


def test_config_is_frozen() -> None:
    config = BenchmarkConfig()
    with pytest.raises(ValidationError):
        config.num_runs = 5


def test_yaml_file_and_overrides(tmp_path: Path) -> None:
    path = tmp_path / "bench.yaml"
    path.write_text("num_runs: 5\ndocker_image: custom-bench\nsubsystems: [network, cpu]\n")

    config = load_config(str(path), {"num_runs": 7, "host_ip": None})

    assert config.num_runs == 7
    assert config.docker_image == "custom-bench"
    assert config.subsystems == (Subsystem.CPU, Subsystem.NETWORK)
    assert config.host_ip is None


def test_path_from_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "bench.json"
    path.write_text(json.dumps({"file_test_mode": "seqrd"}))
    monkeypatch.setenv(CONFIG_PATH_ENV, str(path))

    assert load_config().file_test_mode == "seqrd"


@pytest.mark.parametrize(
    "overrides",
    (
        {"num_runs": 0},
        {"mem_total_size": "ten gigs"},
        {"file_test_mode": "random"},
        {"host_ip": "not-an-ip"},
        {"container_mount_point": "relative/dir"},
        {"subsystems": []},
        {"subsystems": ["gpu"]},
        {"unknown_key": 1},
    ),
)
def test_invalid_values_rejected(overrides: dict) -> None:
    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        load_config(overrides=overrides)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(str(tmp_path / "absent.yaml"))


def test_malformed_yaml(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("num_runs: [unclosed\n")
    with pytest.raises(ConfigurationError, match="Failed to parse"):
        load_config(str(path))


def test_display_dict_is_plain() -> None:
    data = BenchmarkConfig(subsystems=["cpu"]).to_display_dict()
    assert data["subsystems"] == ["cpu"]
    assert data["test_vol_dir"] == "docker-vol-test-data"
