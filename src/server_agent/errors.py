"""
Error signals shared by collectors, the aggregator and the reporter.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Category of a failure during a collection cycle."""

    TOOL = "tool"
    TELEMETRY = "telemetry"
    SERIALIZATION = "serialization"
    TRANSMISSION = "transmission"


@dataclass
class CollectionError:
    """A single failure recorded during collection: kind plus message."""

    kind: ErrorKind
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> CollectionError:
        return cls(kind=ErrorKind(data["kind"]), message=data["message"])

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


class AgentError(Exception):
    """Base class for errors raised by the agent."""

    kind: ErrorKind = ErrorKind.TELEMETRY


class SerializationError(AgentError):
    """Raised when a payload cannot be serialized to JSON."""

    kind = ErrorKind.SERIALIZATION


class TransmissionError(AgentError):
    """Raised when a payload could not be delivered to the collector."""

    kind = ErrorKind.TRANSMISSION
