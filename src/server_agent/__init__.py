"""
Server Agent - Host telemetry collection and reporting.

Periodically gathers drive health (via smartctl), CPU, memory and network
counters and reports them as JSON to a remote collector.
"""

__version__ = "0.3.0"
__author__ = "Server Agent contributors"

__all__ = ["__version__"]
