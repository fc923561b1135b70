"""Device topology mirrored from state reads.

Entities live in a single arena keyed by stable string ids and point to
their parents by id:

    card "0"          -> port "ge-0/0/1"  -> sub-interface "ge-0/0/1.100"
    card "ae"         -> port "ae3"
    vrf  "CUST-A"
"""
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Node:
    """The device itself."""
    name: str
    version: str = ""
    chassis: str = ""
    config_class: str = ""


@dataclass
class Card:
    """Line card, or a synthetic card holding logical ports (ae, irb)."""
    id: str
    model: str = ""
    description: str = ""
    port_type: str = ""
    valid_ports: list[str] = field(default_factory=list)
    valid_speeds: list[str] = field(default_factory=list)
    bridging: bool = False
    port_ids: list[str] = field(default_factory=list)


@dataclass
class LAG:
    lacp_enabled: bool = False
    lacp_mode: str = ""
    members: list[str] = field(default_factory=list)


@dataclass
class Port:
    """Physical or logical interface. The id is the interface name."""
    id: str
    card_id: str
    number: str = ""
    oper_status: str = ""
    admin_status: str = ""
    description: str = ""
    bridging: bool = False
    subinterface_ids: list[str] = field(default_factory=list)
    lag: Optional[LAG] = None

    @property
    def if_name(self) -> str:
        return self.id


@dataclass
class SubInterface:
    """Logical unit on a port. The id is "<port>.<index>"."""
    id: str
    port_id: str
    index: int
    description: str = ""
    ip_address: str = ""
    service: str = ""
    admin_status: str = ""
    vrf_name: Optional[str] = None

    @property
    def if_name(self) -> str:
        return self.id


@dataclass
class VRF:
    """Routing instance as read from the device."""
    name: str
    route_distinguisher: str = ""
    import_route_targets: list[str] = field(default_factory=list)
    export_route_targets: list[str] = field(default_factory=list)
    associated_vpns: dict[str, str] = field(default_factory=dict)  # name -> description


class Topology:
    """Arena of topology entities for one device."""

    def __init__(self, node: Optional[Node] = None):
        self.node = node or Node(name="")
        self.cards: dict[str, Card] = {}
        self.ports: dict[str, Port] = {}
        self.subinterfaces: dict[str, SubInterface] = {}
        self.vrfs: dict[str, VRF] = {}

    # --- Cards ---

    def reset_cards(self) -> None:
        """Drop all cards and everything below them."""
        self.cards.clear()
        self.ports.clear()
        self.subinterfaces.clear()

    def add_card(self, card: Card) -> Card:
        self.cards[card.id] = card
        return card

    def card(self, card_id: str) -> Card:
        if card_id not in self.cards:
            raise KeyError(f"Unknown card: {card_id}")
        return self.cards[card_id]

    # --- Ports ---

    def set_ports(self, card_id: str, ports: list[Port]) -> None:
        """Replace a card's ports (and their sub-interfaces)."""
        card = self.card(card_id)
        for port_id in card.port_ids:
            self._drop_port(port_id)
        card.port_ids = []
        for port in ports:
            self.ports[port.id] = port
            card.port_ids.append(port.id)

    def _drop_port(self, port_id: str) -> None:
        port = self.ports.pop(port_id, None)
        if port:
            for sub_id in port.subinterface_ids:
                self.subinterfaces.pop(sub_id, None)

    def port(self, port_id: str) -> Port:
        if port_id not in self.ports:
            raise KeyError(f"Unknown port: {port_id}")
        return self.ports[port_id]

    def ports_of(self, card_id: str) -> list[Port]:
        return [self.ports[p] for p in self.card(card_id).port_ids]

    # --- Sub-interfaces ---

    def set_subinterfaces(self, port_id: str, subs: list[SubInterface]) -> None:
        port = self.port(port_id)
        for sub_id in port.subinterface_ids:
            self.subinterfaces.pop(sub_id, None)
        port.subinterface_ids = []
        for sub in subs:
            self.subinterfaces[sub.id] = sub
            port.subinterface_ids.append(sub.id)

    def subinterfaces_of(self, port_id: str) -> list[SubInterface]:
        return [self.subinterfaces[s] for s in self.port(port_id).subinterface_ids]

    def subinterface(self, sub_id: str) -> SubInterface:
        if sub_id not in self.subinterfaces:
            raise KeyError(f"Unknown sub-interface: {sub_id}")
        return self.subinterfaces[sub_id]

    def parent_port(self, sub_id: str) -> Port:
        return self.port(self.subinterface(sub_id).port_id)

    # --- VRFs ---

    def vrf(self, name: str) -> VRF:
        """Get a VRF, creating an empty placeholder on first use."""
        if name not in self.vrfs:
            self.vrfs[name] = VRF(name=name)
        return self.vrfs[name]
