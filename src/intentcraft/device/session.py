"""Per-device session: state mirroring and change execution.

A session binds one resolved intent to one transport. It reads device
state into a topology arena, answers intent-versus-state questions
(available VPNs, next free AE bundle, free VLANs) and applies compiled
changes in order.

Usage:
    async with DeviceSession(resolved, transport) as session:
        await session.load_cards()
        ports = await session.load_ports("0")
        change = session.compiler.firewall_policy("ge-0/0/1", 100, "internet")
        await session.apply(change, operation="firewall_policy")
"""
import ipaddress
import logging
import re
from typing import Any, Iterable, Optional

from ..compiler.compiler import ConfigCompiler
from ..compiler.schema import CompiledChange, WireOperation
from ..errors import PolicyNotFoundError, TransportError, ValidationError
from ..intent.schema import ResolvedIntent
from ..transport.base import TransportGateway
from ..utils.audit_log import log_change
from ..utils.logging_config import timed, timed_section
from .topology import LAG, VRF, Card, Node, Port, SubInterface, Topology

logger = logging.getLogger(__name__)

READ_TIMEOUT = 10.0
BULK_READ_TIMEOUT = 20.0

AE_CARD = "ae"
IRB_CARD = "irb"

_FPC_PATTERN = re.compile(r"FPC-(\d+)")
_PHYSICAL_PORT_PATTERN = re.compile(r"^\w+-(\d+)/\d+/(\d+)$")


def expand_port_ranges(ranges: Iterable[str]) -> list[str]:
    """Expand range strings like "0-255,511" into individual port ids.

    Raises:
        ValidationError: If a range is malformed or reversed
    """
    ports: list[str] = []
    for entry in ranges:
        for part in str(entry).split(","):
            part = part.strip()
            if not part:
                continue
            bounds = part.split("-")
            if len(bounds) == 1:
                ports.append(bounds[0])
            elif len(bounds) == 2:
                try:
                    start, end = int(bounds[0]), int(bounds[1])
                except ValueError:
                    raise ValidationError(f"Invalid range: {part}")
                if start > end:
                    raise ValidationError(f"Invalid range: {part}")
                ports.extend(str(i) for i in range(start, end + 1))
            else:
                raise ValidationError(f"Invalid range format: {part}")
    return ports


def _child(data: Any, name: str) -> Any:
    """Get a container by bare name, ignoring any module prefix on the key."""
    if not isinstance(data, dict):
        return None
    if name in data:
        return data[name]
    for key, value in data.items():
        if key.endswith(f":{name}"):
            return value
    return None


def _entries(container: Any, name: str) -> list[dict]:
    """List entries of a YANG list, whether encoded as a list or a keyed map."""
    value = _child(container, name)
    if isinstance(value, list):
        return [v for v in value if isinstance(v, dict)]
    if isinstance(value, dict):
        return [v for v in value.values() if isinstance(v, dict)]
    return []


def _strip_module(identity: str) -> str:
    return identity.split(":", 1)[-1]


def _interfaces(data: dict) -> list[dict]:
    container = _child(data, "interfaces")
    if container is not None:
        return _entries(container, "interface")
    return _entries(data, "interface")


class DeviceSession:
    """Session against one device."""

    def __init__(
        self,
        intent: ResolvedIntent,
        transport: TransportGateway,
        compiler: Optional[ConfigCompiler] = None,
    ):
        self.intent = intent
        self.transport = transport
        self.compiler = compiler or ConfigCompiler(intent)
        self.topology = Topology(Node(name=intent.device_name))

    @property
    def device_id(self) -> str:
        return self.intent.device_name

    async def __aenter__(self):
        await self.transport.connect()
        try:
            await self.load_initial_state()
        except Exception:
            await self.transport.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.transport.close()
        return False

    # --- State loading ---

    @timed("load_initial_state")
    async def load_initial_state(self) -> Node:
        """Read hostname, platform and software version."""
        data = await self.transport.read("system/state", READ_TIMEOUT)
        state = _child(data, "state")
        if state is None:
            state = _child(_child(data, "system"), "state")
        if not isinstance(state, dict) or not state.get("hostname"):
            raise TransportError(
                "Incomplete system state received", path="system/state", operation="read"
            )

        node = self.topology.node
        node.name = state["hostname"]
        node.version = state.get("software-version", "")
        node.chassis = state.get("platform", "")
        node.config_class = self.intent.config_class
        logger.info(f"[{self.device_id}] {node.name} running {node.version or 'unknown'}")
        return node

    def _card_profile_fields(self, card_id: str, model: str) -> dict[str, Any]:
        chassis = self.intent.chassis
        if chassis is None:
            return {}
        profile = chassis.cards.get(model) or chassis.cards.get(card_id)
        if profile is None:
            return {}
        return {
            "valid_ports": list(profile.valid_ports),
            "valid_speeds": list(profile.valid_speeds),
            "bridging": profile.bridging,
        }

    @timed("load_cards")
    async def load_cards(self) -> list[Card]:
        """Read line cards; the ae and irb cards are always added."""
        data = await self.transport.read("components", BULK_READ_TIMEOUT)
        self.topology.reset_cards()

        for comp in _entries(_child(data, "components") or data, "component"):
            name = comp.get("name", "")
            state = comp.get("state") or {}
            if "FPC" not in str(state.get("type", "")):
                continue
            match = _FPC_PATTERN.search(name)
            if not match:
                continue
            card_id = match.group(1)
            self.topology.add_card(Card(
                id=card_id,
                model=name,
                description=state.get("description", ""),
                **self._card_profile_fields(card_id, name),
            ))

        self.topology.add_card(Card(
            id=AE_CARD,
            model="Aggregated-Ethernet",
            description="Aggregated Ethernet",
            port_type=AE_CARD,
            **self._card_profile_fields(AE_CARD, "Aggregated-Ethernet"),
        ))
        self.topology.add_card(Card(
            id=IRB_CARD,
            model="IRB",
            description="Integrated Routing and Bridging",
            port_type=IRB_CARD,
            **self._card_profile_fields(IRB_CARD, "IRB"),
        ))

        logger.info(f"[{self.device_id}] loaded {len(self.topology.cards)} cards")
        return list(self.topology.cards.values())

    def _port_number(self, card: Card, if_name: str) -> Optional[str]:
        if card.port_type in (AE_CARD, IRB_CARD):
            match = re.fullmatch(rf"{re.escape(card.id)}(\d+)", if_name)
            return match.group(1) if match else None
        match = _PHYSICAL_PORT_PATTERN.match(if_name)
        if match and match.group(1) == card.id:
            return match.group(2)
        return None

    @timed("load_ports")
    async def load_ports(self, card_id: str) -> list[Port]:
        """Read the interfaces belonging to one card."""
        card = self.topology.card(card_id)
        data = await self.transport.read("interfaces", BULK_READ_TIMEOUT)

        ports = []
        for iface in _interfaces(data):
            if_name = iface.get("name", "")
            number = self._port_number(card, if_name)
            if number is None:
                continue
            state = iface.get("state") or {}
            ports.append(Port(
                id=if_name,
                card_id=card.id,
                number=number,
                oper_status=state.get("oper-status", ""),
                admin_status=state.get("admin-status", ""),
                description=state.get("description", ""),
                bridging=card.bridging,
            ))

        self.topology.set_ports(card.id, ports)
        logger.debug(f"[{self.device_id}] card {card_id}: {len(ports)} ports")
        return ports

    def service_for_address(self, ip_address: str) -> str:
        """Derive a sub-interface's service from its address.

        Network keys in the prefix-service mapping match by containment
        (longest prefix wins); other keys match as plain string prefixes.
        """
        if not ip_address:
            return ""
        host = ip_address.split("/", 1)[0]
        try:
            addr = ipaddress.ip_address(host)
        except ValueError:
            addr = None

        best: Optional[tuple[int, str]] = None
        for prefix in sorted(self.intent.prefix_service_mapping):
            services = self.intent.prefix_service_mapping[prefix]
            if not services:
                continue
            try:
                network = ipaddress.ip_network(prefix, strict=False)
            except ValueError:
                network = None

            if network is not None and addr is not None:
                if addr.version == network.version and addr in network:
                    if best is None or network.prefixlen > best[0]:
                        best = (network.prefixlen, services[0])
            elif ip_address.startswith(prefix) and best is None:
                best = (-1, services[0])
        return best[1] if best else ""

    @timed("load_port_detail")
    async def load_port_detail(self, port_id: str) -> list[SubInterface]:
        """Read a port's sub-interfaces and their addresses."""
        port = self.topology.port(port_id)
        path = f"interfaces/interface[name={port.if_name}]"
        data = await self.transport.read(path, READ_TIMEOUT)

        subs = []
        interfaces = _interfaces(data)
        if interfaces:
            for subif in _entries(_child(interfaces[0], "subinterfaces"), "subinterface"):
                index = int(subif.get("index", 0))
                state = subif.get("state") or {}
                ip_address = ""
                for address in _entries(_child(_child(subif, "ipv4"), "addresses"), "address"):
                    addr_state = address.get("state") or address.get("config") or {}
                    ip = addr_state.get("ip") or address.get("ip", "")
                    if ip:
                        ip_address = f"{ip}/{addr_state.get('prefix-length', 32)}"
                        break  # One address per sub-interface
                subs.append(SubInterface(
                    id=f"{port.if_name}.{index}",
                    port_id=port.id,
                    index=index,
                    description=state.get("description", ""),
                    admin_status=state.get("admin-status", ""),
                    ip_address=ip_address,
                    service=self.service_for_address(ip_address),
                ))

        self.topology.set_subinterfaces(port.id, subs)
        return subs

    @timed("load_lag_detail")
    async def load_lag_detail(self, port_id: str) -> LAG:
        """Read LACP state and members of an AE bundle."""
        port = self.topology.port(port_id)
        path = f"interfaces/interface[name={port.if_name}]"
        data = await self.transport.read(path, READ_TIMEOUT)

        lag = LAG()
        interfaces = _interfaces(data)
        if interfaces:
            state = _child(_child(interfaces[0], "aggregation"), "state") or {}
            lag.lacp_enabled = _strip_module(str(state.get("lag-type", ""))) == "LACP"
            lag.lacp_mode = state.get("lacp-mode", "")
            lag.members = [str(m) for m in state.get("member") or []]

        port.lag = lag
        return lag

    @timed("load_vrf_detail")
    async def load_vrf_detail(self, name: str) -> VRF:
        """Read a VRF's RD and IPv4 unicast route targets.

        VPNs whose resolved import target appears among the VRF's import
        route targets are recorded as associated.
        """
        path = f"network-instances/network-instance[name={name}]"
        data = await self.transport.read(path, READ_TIMEOUT)

        vrf = self.topology.vrf(name)
        vrf.route_distinguisher = ""
        vrf.import_route_targets = []
        vrf.export_route_targets = []
        instances = _entries(_child(data, "network-instances") or data, "network-instance")
        if instances:
            instance = instances[0]
            vrf.route_distinguisher = (instance.get("state") or {}).get("route-distinguisher", "")
            for afi_safi in _entries(_child(instance, "afi-safis"), "afi-safi"):
                state = afi_safi.get("state") or afi_safi.get("config") or {}
                afi_name = afi_safi.get("afi-safi-name") or state.get("afi-safi-name", "")
                if _strip_module(str(afi_name)) != "IPV4_UNICAST":
                    continue
                vrf.import_route_targets = [str(rt) for rt in state.get("import-route-target") or []]
                vrf.export_route_targets = [str(rt) for rt in state.get("export-route-target") or []]

        current = set(vrf.import_route_targets)
        vrf.associated_vpns = {
            vpn_name: vpn.description
            for vpn_name, vpn in self.intent.vpns.items()
            if vpn.import_target in current
        }
        return vrf

    # --- Intent versus state ---

    async def available_vpns(self, vrf_name: str, service: str) -> list[str]:
        """VPNs the service joins by default that the VRF does not carry yet.

        Raises:
            PolicyNotFoundError: If the service is not defined
        """
        svc = self.intent.services.get(service)
        if svc is None:
            raise PolicyNotFoundError(f"service '{service}' not defined in intent")

        vrf = await self.load_vrf_detail(vrf_name)
        return [
            vpn_name
            for vpn_name in svc.default_vpns
            if vpn_name not in vrf.associated_vpns and vpn_name in self.intent.vpns
        ]

    async def next_available_ae(self) -> Optional[str]:
        """First AE interface name allowed by the platform but not configured.

        Returns:
            Interface name such as "ae3", or None when every id is taken
        """
        if AE_CARD not in self.topology.cards:
            await self.load_cards()
        card = self.topology.card(AE_CARD)
        candidates = expand_port_ranges(card.valid_ports)

        configured = {port.number for port in await self.load_ports(AE_CARD)}
        for number in candidates:
            if number not in configured:
                return f"{AE_CARD}{number}"

        logger.warning(f"[{self.device_id}] no available AE interfaces")
        return None

    async def available_vlans(self, port_id: str) -> list[str]:
        """VLANs mapped to the port by intent and not yet used as sub-interface indices.

        The port's own entry in vlan_port_mapping is used when present,
        otherwise the "default" entry.
        """
        mapping = self.intent.vlan_port_mapping
        allowed = mapping.get(port_id)
        if allowed is None:
            allowed = mapping.get("default", [])

        await self.load_port_detail(port_id)
        used = {str(sub.index) for sub in self.topology.subinterfaces_of(port_id)}
        return [vlan for vlan in allowed if vlan not in used]

    # --- Execution ---

    async def apply(self, change: CompiledChange, operation: str = "change") -> list[WireOperation]:
        """Write every operation of a change, in order.

        There is no rollback: on failure the operations already written
        stay written and are reported on the raised error.

        Returns:
            The operations applied

        Raises:
            TransportError: With .index of the failing operation and
                .applied holding the operations written before it
        """
        applied: list[WireOperation] = []
        paths = [op.path for op in change.operations]
        total = len(change.operations)

        for i, op in enumerate(change.operations):
            try:
                async with timed_section(
                    "write", device_id=self.device_id, op=op.operation.value, path=op.path
                ):
                    await self.transport.write(op.path, op.operation, op.payload, op.timeout)
            except TransportError as e:
                log_change(
                    self.device_id,
                    operation,
                    change.description,
                    paths,
                    applied=len(applied),
                    error=str(e),
                    failed_index=i,
                )
                logger.error(
                    f"[{self.device_id}] {change.description}: operation {i + 1}/{total} "
                    f"failed, {len(applied)} already applied"
                )
                raise TransportError(
                    f"{change.description}: operation {i + 1} of {total} failed: {e.reason}",
                    path=op.path,
                    operation=op.operation.value,
                    applied=list(applied),
                    index=i,
                ) from e
            applied.append(op)

        log_change(self.device_id, operation, change.description, paths, applied=len(applied))
        logger.info(f"[{self.device_id}] applied {change.description}")
        return applied

    async def configure_vpn_membership(self, vrf_name: str, vpn_name: str, action: str) -> CompiledChange:
        """Read the VRF, compile the new route-target lists and write them."""
        vrf = await self.load_vrf_detail(vrf_name)
        change = self.compiler.vpn_membership(vrf, vpn_name, action)
        await self.apply(change, operation="vpn_membership")
        return change
