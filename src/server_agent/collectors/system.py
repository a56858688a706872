"""
System statistics collector.

Collects CPU, memory and network counters through psutil.
"""

from __future__ import annotations

import platform
from typing import Any

import psutil

from server_agent.collectors.base import BaseCollector
from server_agent.errors import ErrorKind
from server_agent.models import SENTINEL_FLOAT, UNKNOWN, CPURecord, MemRecord, NetworkRecord

# Sensor chips that report the package/core temperature, in preference order
CPU_SENSOR_NAMES = ("coretemp", "k10temp", "zenpower", "cpu_thermal", "cpu-thermal", "acpitz")


class SystemCollector(BaseCollector):
    """Collects CPU, memory and network statistics."""

    name = "system"
    description = "CPU, memory and network statistics"

    def collect(self) -> dict[str, Any]:
        """Collect system statistics."""
        return {
            "cpu": self.get_cpu_stats().to_dict(),
            "memory": self.get_mem_stats().to_dict(),
            "network": self.get_network_stats().to_dict(),
        }

    def get_cpu_stats(self) -> CPURecord:
        """
        Get CPU information, usage and temperature.

        Each part degrades to sentinel values on its own. The usage sample
        blocks for `cpu_sample_interval` seconds.
        """
        stats = CPURecord()

        try:
            stats.model_name = self._get_cpu_model()
            # Logical CPUs: one per hardware thread
            stats.cpu_count = psutil.cpu_count(logical=True) or -1
            stats.threads = stats.cpu_count
            freq = psutil.cpu_freq()
            stats.clock_mhz = float(freq.current) if freq else SENTINEL_FLOAT
        except Exception as e:
            self.record_error(ErrorKind.TELEMETRY, f"Error getting CPU info: {e}")
            stats.model_name = UNKNOWN
            stats.cpu_count = -1
            stats.threads = -1
            stats.clock_mhz = SENTINEL_FLOAT

        try:
            stats.usage_percent = float(
                psutil.cpu_percent(interval=self.config.cpu_sample_interval)
            )
        except Exception as e:
            self.record_error(ErrorKind.TELEMETRY, f"Error getting CPU usage: {e}")
            stats.usage_percent = SENTINEL_FLOAT

        stats.temp_c = self._get_cpu_temperature()

        return stats

    def _get_cpu_model(self) -> str:
        """Read the model name from /proc/cpuinfo, falling back to platform."""
        cpuinfo: dict[str, str] = {}
        for line in self.read_file_lines("/proc/cpuinfo"):
            if ":" in line:
                key, _, value = line.partition(":")
                key = key.strip().lower()
                if key in ("model name", "hardware") and value.strip():
                    cpuinfo.setdefault(key, value.strip())

        # ARM boards report the SoC under "Hardware" instead of "model name"
        return (
            cpuinfo.get("model name")
            or cpuinfo.get("hardware")
            or platform.processor()
            or UNKNOWN
        )

    def _get_cpu_temperature(self) -> float:
        """Return the CPU temperature in Celsius, or -1 when unavailable."""
        # Not provided on Windows and macOS
        if not hasattr(psutil, "sensors_temperatures"):
            self.logger.debug("CPU temperature not supported on this platform")
            return SENTINEL_FLOAT

        try:
            temps = psutil.sensors_temperatures()
        except Exception as e:
            self.record_error(ErrorKind.TELEMETRY, f"Error getting CPU temperature: {e}")
            return SENTINEL_FLOAT

        if not temps:
            self.logger.debug("No temperature sensors found")
            return SENTINEL_FLOAT

        for sensor in CPU_SENSOR_NAMES:
            if temps.get(sensor):
                return float(temps[sensor][0].current)

        # Assume the first reporting sensor is the CPU
        for entries in temps.values():
            if entries:
                return float(entries[0].current)
        return SENTINEL_FLOAT

    def get_mem_stats(self) -> MemRecord:
        """Get physical memory statistics."""
        stats = MemRecord()

        try:
            mem = psutil.virtual_memory()
        except Exception as e:
            self.record_error(ErrorKind.TELEMETRY, f"Error getting memory stats: {e}")
            return stats

        stats.total = mem.total
        stats.used = mem.used
        stats.used_percent = float(mem.percent)
        return stats

    def get_network_stats(self) -> NetworkRecord:
        """Get network I/O counters summed over all interfaces."""
        stats = NetworkRecord()

        try:
            counters = psutil.net_io_counters(pernic=True)
        except Exception as e:
            self.record_error(ErrorKind.TELEMETRY, f"Error getting network stats: {e}")
            return stats

        if not counters:
            self.record_error(ErrorKind.TELEMETRY, "No network interfaces reported")
            return stats

        for counter in counters.values():
            stats.bytes_sent += counter.bytes_sent
            stats.bytes_recv += counter.bytes_recv
        return stats
