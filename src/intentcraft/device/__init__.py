"""Device sessions and the topology they mirror."""
from .session import DeviceSession, expand_port_ranges
from .topology import LAG, VRF, Card, Node, Port, SubInterface, Topology

__all__ = [
    "DeviceSession",
    "expand_port_ranges",
    "Topology",
    "Node",
    "Card",
    "Port",
    "SubInterface",
    "LAG",
    "VRF",
]
