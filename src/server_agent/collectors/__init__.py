"""
Data collectors for Server Agent.

Each collector is responsible for gathering one part of the payload.
"""

from __future__ import annotations

from server_agent.collectors.base import BaseCollector
from server_agent.collectors.drives import DriveCollector
from server_agent.collectors.system import SystemCollector

# Registry of all available collectors
COLLECTORS: dict[str, type[BaseCollector]] = {
    "drives": DriveCollector,
    "system": SystemCollector,
}

__all__ = [
    "BaseCollector",
    "DriveCollector",
    "SystemCollector",
    "COLLECTORS",
]
