"""
dockerbench: host versus container performance comparison.

Drives sysbench, iperf3 and the docker CLI over a fixed scenario matrix
(CPU, memory, disk I/O, network), averages repeated trials and renders a
comparison report.

Examples:
- dockerbench run
- dockerbench run --trials 5 --subsystem cpu --subsystem memory
- python -m dockerbench preflight check
"""

from __future__ import annotations

import logging

__version__ = "0.1.0"
__all__ = ["__version__"]

logger = logging.getLogger(__name__)
