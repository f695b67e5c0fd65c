"""
Benchmark Configuration

This module defines the immutable configuration for one benchmark run and
the loader that builds it from defaults, an optional YAML/JSON file and
command-line overrides.

Precedence (lowest to highest):
    1. Field defaults
    2. Configuration file (``--config`` or ``DOCKERBENCH_CONFIG_PATH``)
    3. Explicit overrides (CLI options); ``None`` values are ignored
"""

import ipaddress
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from dockerbench.exceptions import ConfigurationError
from dockerbench.scenarios import Subsystem

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "DOCKERBENCH_CONFIG_PATH"

FILE_TEST_MODES = ("seqwr", "seqrewr", "seqrd", "rndrd", "rndwr", "rndrw")

_SIZE_PATTERN = re.compile(r"^\d+[KMGT]?$")


class BenchmarkConfig(BaseModel):
    """
    Settings for a benchmark run.

    The model is frozen: it is set once at start and read-only thereafter.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Run shape
    num_runs: int = Field(default=3, ge=1, description="Repeated trials per scenario")
    subsystems: Tuple[Subsystem, ...] = Field(default=tuple(Subsystem))
    fail_fast: bool = Field(default=False, description="Abort the run on the first failed trial")
    count_parse_failures: bool = Field(
        default=False,
        description="Record unparseable output as a 0.0 sample instead of a failure",
    )

    # Container runtime
    docker_image: str = Field(default="sysbench-test", min_length=1)
    container_mount_point: str = Field(default="/test")

    # CPU / memory
    cpu_threads: Optional[int] = Field(default=None, ge=1, description="None means all cores")
    cpu_max_prime: int = Field(default=20000, ge=1)
    mem_total_size: str = "10G"
    mem_block_size: str = "1M"

    # Disk I/O
    file_total_size: str = "2G"
    file_threads: int = Field(default=4, ge=1)
    file_test_mode: str = "rndrw"
    file_test_time: int = Field(default=30, ge=1, description="Seconds per fileio run")
    test_vol_dir: Path = Path("./docker-vol-test-data")
    log_dir: Path = Path(".")

    # Network
    iperf_time: int = Field(default=10, ge=1, description="Seconds per iperf3 client run")
    host_ip: Optional[str] = None
    server_settle_seconds: float = Field(default=3.0, ge=0)

    # Pacing and output
    trial_pause_seconds: float = Field(default=1.0, ge=0)
    precision: int = Field(default=3, ge=0, le=10)

    @field_validator("mem_total_size", "mem_block_size", "file_total_size")
    @classmethod
    def validate_size(cls, v: str) -> str:
        """Sizes use sysbench notation: digits with an optional K/M/G/T suffix."""
        if not _SIZE_PATTERN.match(v):
            raise ValueError(f"invalid size '{v}', expected e.g. 512M or 2G")
        return v

    @field_validator("file_test_mode")
    @classmethod
    def validate_file_test_mode(cls, v: str) -> str:
        if v not in FILE_TEST_MODES:
            raise ValueError(f"unknown file test mode '{v}', expected one of {', '.join(FILE_TEST_MODES)}")
        return v

    @field_validator("host_ip")
    @classmethod
    def validate_host_ip(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        ipaddress.IPv4Address(v)
        return v

    @field_validator("container_mount_point")
    @classmethod
    def validate_mount_point(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("container mount point must be an absolute path")
        return v

    @field_validator("subsystems", mode="before")
    @classmethod
    def order_subsystems(cls, v: Any) -> Any:
        """Keep the fixed CPU, Memory, Disk I/O, Network order regardless of input order."""
        if v is None:
            return tuple(Subsystem)
        if isinstance(v, (str, Subsystem)):
            v = [v]
        selected = {Subsystem(item) for item in v}
        if not selected:
            raise ValueError("at least one subsystem must be selected")
        return tuple(s for s in Subsystem if s in selected)

    def to_display_dict(self) -> Dict[str, Any]:
        """Plain, YAML-friendly view of the configuration."""
        return self.model_dump(mode="json")


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path) as f:
            if config_path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            elif config_path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                raise ConfigurationError(f"Unsupported configuration format: {config_path.suffix}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to parse configuration file: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Error loading configuration: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid configuration format in {config_path}")
    logger.debug(f"Loaded configuration from {config_path}")
    return data


def load_config(
    path: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> BenchmarkConfig:
    """
    Build the effective configuration for a run.

    Args:
        path: Optional configuration file; defaults to ``$DOCKERBENCH_CONFIG_PATH``
        overrides: Values that take precedence over the file; ``None`` entries are skipped

    Returns:
        The validated, frozen configuration

    Raises:
        ConfigurationError: If the file cannot be read or any value is invalid
    """
    config_path = path or os.environ.get(CONFIG_PATH_ENV)
    values: Dict[str, Any] = {}
    if config_path:
        values.update(_read_config_file(Path(config_path)))
    else:
        logger.debug("No configuration file specified, using defaults")

    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    try:
        return BenchmarkConfig(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from e
