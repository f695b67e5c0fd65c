"""
Exceptions for dockerbench.

Every error the orchestrator raises on purpose derives from
``DockerBenchError`` so the CLI can report it as a one-line cause and exit
non-zero. The categories follow the run lifecycle:

- Configuration errors (bad config file or invalid values)
- Preflight errors (missing tool, missing image, no host IP)
- Trial execution errors (external tool or container exited non-zero)
- Network server errors (the iperf3 listener could not be started)

Parse failures are deliberately not exceptions: the parsers return ``None``
and the driver records the failure against the scenario.
"""

from typing import Any, Dict, Optional, Sequence


class DockerBenchError(Exception):
    """Base exception class for all dockerbench errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize a dockerbench error.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional context information for debugging
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}


class ConfigurationError(DockerBenchError):
    """Raised when the benchmark configuration cannot be loaded or is invalid."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="CONFIGURATION_ERROR", context=context)


class PreflightError(DockerBenchError):
    """Raised when the environment is not ready for a benchmark run."""

    def __init__(self, message: str, missing: Optional[str] = None):
        """
        Initialize a preflight error.

        Args:
            message: Human-readable error message
            missing: Name of the missing dependency (tool, image, host IP)
        """
        self.missing = missing
        super().__init__(message, error_code="PREFLIGHT_FAILED", context={"missing": missing})


class TrialExecutionError(DockerBenchError):
    """Raised when one trial's external command fails to run to completion."""

    def __init__(self, command: Sequence[str], returncode: Optional[int] = None,
                 stderr: str = "", message: Optional[str] = None):
        """
        Initialize a trial execution error.

        Args:
            command: The argv that was executed
            returncode: Exit status, or None when the process never started
            stderr: Captured standard error (trimmed to the last 500 chars)
            message: Optional custom message
        """
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr[-500:] if stderr else ""
        program = self.command[0] if self.command else "<empty>"
        default_message = f"'{program}' exited with status {returncode}"
        if self.stderr.strip():
            default_message += f": {self.stderr.strip().splitlines()[-1]}"
        super().__init__(
            message or default_message,
            error_code="TRIAL_FAILED",
            context={"command": self.command, "returncode": returncode},
        )


class NetworkServerError(DockerBenchError):
    """Raised when the background iperf3 listener cannot be started."""

    def __init__(self, message: str):
        super().__init__(message, error_code="NETWORK_SERVER_FAILED")
