"""Transport gateways - remote reads and writes of OpenConfig subtrees."""
from .base import DEFAULT_READ_TIMEOUT, TransportConfig, TransportGateway
from .memory import MemoryTransport, RecordedWrite
from .restconf import RestconfTransport, to_resource

__all__ = [
    "TransportGateway",
    "TransportConfig",
    "DEFAULT_READ_TIMEOUT",
    "MemoryTransport",
    "RecordedWrite",
    "RestconfTransport",
    "to_resource",
]
