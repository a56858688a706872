"""
Core orchestration module for Server Agent.

Runs the collectors, aggregates their records into a payload and hands it
to the reporter.
"""

from __future__ import annotations

import json
import logging
import socket
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from server_agent.collectors import DriveCollector, SystemCollector
from server_agent.config import Config
from server_agent.errors import CollectionError, ErrorKind, SerializationError, TransmissionError
from server_agent.models import CPURecord, DriveRecord, MemRecord, NetworkRecord
from server_agent.reporter import Reporter

logger = logging.getLogger(__name__)


@dataclass
class Payload:
    """Everything collected in one cycle."""

    drives: list[DriveRecord]
    cpu: CPURecord
    memory: MemRecord
    network: NetworkRecord
    hostname: str = ""
    timestamp: str = ""
    agent_version: str = ""
    errors: list[CollectionError] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert payload to dictionary for serialization."""
        return {
            "meta": {
                "hostname": self.hostname,
                "timestamp": self.timestamp,
                "agent_version": self.agent_version,
            },
            "drives": [drive.to_dict() for drive in self.drives],
            "cpu": self.cpu.to_dict(),
            "memory": self.memory.to_dict(),
            "network": self.network.to_dict(),
            "errors": [error.to_dict() for error in self.errors],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Payload:
        """Rebuild a payload from its dictionary form."""
        meta = data.get("meta", {})
        return cls(
            drives=[DriveRecord.from_dict(d) for d in data.get("drives", [])],
            cpu=CPURecord.from_dict(data.get("cpu", {})),
            memory=MemRecord.from_dict(data.get("memory", {})),
            network=NetworkRecord.from_dict(data.get("network", {})),
            hostname=meta.get("hostname", ""),
            timestamp=meta.get("timestamp", ""),
            agent_version=meta.get("agent_version", ""),
            errors=[CollectionError.from_dict(e) for e in data.get("errors", [])],
        )

    def to_json(self, indent: int = 2) -> str:
        """Serialize payload to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def failing_drives(self) -> list[DriveRecord]:
        return [drive for drive in self.drives if drive.is_failing()]


def build_payload(
    drives: list[DriveRecord],
    cpu: CPURecord,
    memory: MemRecord,
    network: NetworkRecord,
    errors: list[CollectionError] | None = None,
) -> Payload:
    """Place the collected records into one payload stamped with host and time."""
    from server_agent import __version__

    return Payload(
        drives=list(drives),
        cpu=cpu,
        memory=memory,
        network=network,
        hostname=socket.gethostname(),
        timestamp=datetime.now(timezone.utc).isoformat(),
        agent_version=__version__,
        errors=list(errors or []),
    )


class Agent:
    """
    Main orchestrator for telemetry collection.

    Owns no state between cycles: every call to `collect` builds fresh
    collectors and a fresh payload, so cycles may run concurrently.
    """

    def __init__(self, config: Config | None = None):
        self.config = config or Config()
        self.reporter = Reporter(self.config)

    def close(self) -> None:
        """Release the reporter's HTTP session."""
        self.reporter.close()

    def collect_drives(self) -> tuple[list[DriveRecord], list[CollectionError]]:
        """Run the drive collector alone."""
        collector = DriveCollector(self.config)
        drives = collector.collect_drives()
        return drives, collector.errors

    def collect(self) -> Payload:
        """
        Run both collectors and aggregate the result.

        Returns:
            Payload with every record populated, sentinels included.
        """
        start = time.perf_counter()

        drives, errors = self.collect_drives()

        system = SystemCollector(self.config)
        cpu = system.get_cpu_stats()
        memory = system.get_mem_stats()
        network = system.get_network_stats()
        errors = errors + system.errors

        payload = build_payload(drives, cpu, memory, network, errors)

        duration = (time.perf_counter() - start) * 1000
        logger.debug(f"Collection completed in {duration:.2f}ms with {len(errors)} errors")

        return payload

    def report(self, payload: Payload, send: bool | None = None) -> dict[str, Any] | None:
        """
        Log the payload and, when transmission is enabled, send it.

        Args:
            payload: The payload to report.
            send: Override for `transmission_enabled`.

        Returns:
            Server response data, or None when nothing was sent.

        Raises:
            SerializationError: If the payload cannot be serialized.
            TransmissionError: If sending failed.
        """
        self.reporter.log_payload(payload)

        if send is None:
            send = self.config.transmission_enabled
        if not send:
            logger.debug("Transmission disabled; payload logged only")
            return None

        if not self.config.transmission_url:
            raise TransmissionError("Transmission enabled but no transmission URL configured")

        return self.reporter.send(payload)

    def collect_and_report(self, send: bool | None = None) -> Payload | None:
        """
        One full cycle: collect, log and optionally send.

        Never raises for collection, serialization or transmission failures;
        they are logged. Returns None when the cycle was aborted before the
        payload could be serialized.
        """
        payload = self.collect()

        try:
            self.report(payload, send=send)
        except SerializationError as e:
            logger.error(f"{e}; aborting cycle")
            return None
        except TransmissionError as e:
            logger.error(f"Error sending data to server: {e}")
            payload.errors.append(CollectionError(kind=ErrorKind.TRANSMISSION, message=str(e)))

        return payload

    def check_drives(self) -> list[DriveRecord]:
        """
        Drive health check run on its own schedule.

        Does nothing unless `alerts_enabled` is set; then collects drives and
        logs a warning for each failing one.

        Returns:
            Failing drives found (empty when alerts are disabled).
        """
        if not self.config.alerts_enabled:
            return []

        drives, errors = self.collect_drives()
        for error in errors:
            logger.debug(f"Drive check: {error}")

        failing = [drive for drive in drives if drive.is_failing()]
        for drive in failing:
            logger.warning(f"Drive failure detected: {drive.name}")

        return failing


def run_collection(config: Config | None = None, send: bool | None = None) -> Payload | None:
    """
    Convenience function to run a single cycle.

    Args:
        config: Optional configuration. Uses defaults if not provided.
        send: Override for `transmission_enabled`.

    Returns:
        The payload, or None if the cycle was aborted.
    """
    agent = Agent(config)
    try:
        return agent.collect_and_report(send=send)
    finally:
        agent.close()
