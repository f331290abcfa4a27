"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the domain needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from apiary.domain.ports.remote_host_port import RemoteHostPort
from apiary.domain.ports.hive_port import HivePort
from apiary.domain.ports.progress_port import ProgressReporterPort
from apiary.domain.ports.event_bus_port import EventBusPort

__all__ = [
    "RemoteHostPort",
    "HivePort",
    "ProgressReporterPort",
    "EventBusPort",
]
