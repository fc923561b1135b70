"""Configuration compiler.

Turns one high-level action against a resolved intent into an ordered list
of wire operations. Compilation is pure: nothing here talks to a device,
and every argument and policy check completes before the first operation
is built, so a rejected action produces no operations at all.

Usage:
    compiler = ConfigCompiler(resolved)
    change = compiler.bridge_interface("ge-0/0/1", "add", "trunk", ["100", "200"])
    for op in change.operations:
        print(op.operation.value, op.path)
"""
import json
import logging
from enum import Enum
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Type, TypeVar

from ..errors import (
    ConfigletError,
    InvalidBandwidthError,
    InvalidCIDRError,
    ModeCardinalityError,
    PolicyNotFoundError,
    ValidationError,
)
from ..intent.schema import ResolvedIntent
from . import paths
from .acl import build_acl_binding, build_acl_set
from .rtset import modify_rt_list
from .schema import (
    ACL_TIMEOUT,
    CONFIGLET_TIMEOUT,
    AdminAction,
    BridgeMode,
    ChangeAction,
    CompiledChange,
    MemberAction,
    Operation,
    WireOperation,
)
from .validator import (
    parse_bandwidth,
    parse_cidr,
    parse_speed,
    parse_vlan_id,
    parse_vlan_ids,
)

if TYPE_CHECKING:
    from ..device.topology import VRF

logger = logging.getLogger(__name__)

BASELINE_CONFIGLETS = ("system_common", "qos_common", "routing_common")

E = TypeVar("E", bound=Enum)


def _coerce(enum_cls: Type[E], value: Any, what: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        valid = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {what} {value!r}: expected one of {valid}")


def _index(value: Any) -> int:
    try:
        index = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid sub-interface index {value!r}")
    if index < 0:
        raise ValidationError(f"Invalid sub-interface index {index}: must be >= 0")
    return index


def load_configlet(name: str, directory: Optional[Path] = None) -> dict[str, Any]:
    """Load a baseline configlet.

    Configlets ship as JSON resources in this package unless a directory
    is given.

    Raises:
        ConfigletError: If the configlet is missing or not a JSON object
    """
    filename = f"{name}.json"
    try:
        if directory is not None:
            text = (Path(directory) / filename).read_text(encoding="utf-8")
        else:
            text = (
                resources.files(__package__)
                .joinpath("configlets")
                .joinpath(filename)
                .read_text(encoding="utf-8")
            )
    except FileNotFoundError as e:
        raise ConfigletError(f"Configlet not found: {filename}") from e
    except OSError as e:
        raise ConfigletError(f"Could not read configlet {filename}: {e}") from e

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigletError(f"Configlet {filename} is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise ConfigletError(f"Configlet {filename} must be a JSON object")
    return payload


class ConfigCompiler:
    """Compile configuration actions for one device."""

    def __init__(self, intent: ResolvedIntent, configlet_dir: Optional[Path] = None):
        """
        Initialize compiler.

        Args:
            intent: Resolved intent for the target device
            configlet_dir: Optional override for baseline configlet files
        """
        self.intent = intent
        self.configlet_dir = configlet_dir

    def _change(self, description: str, *operations: WireOperation) -> CompiledChange:
        change = CompiledChange(description=description, operations=list(operations))
        logger.info(
            f"[{self.intent.device_name}] compiled {description}: "
            f"{change.total_operations} operation(s)"
        )
        return change

    # --- Physical interfaces ---

    def interface_admin_state(self, if_name: str, action: str) -> CompiledChange:
        admin = _coerce(AdminAction, action, "admin action")
        enabled = admin == AdminAction.ENABLE
        return self._change(
            f"{admin.value} {if_name}",
            WireOperation(
                path=paths.interface_enabled(if_name),
                operation=Operation.UPDATE,
                payload={"openconfig-interfaces:enabled": enabled},
            ),
        )

    def interface_speed(self, if_name: str, speed: str) -> CompiledChange:
        identity = parse_speed(speed)
        return self._change(
            f"set speed of {if_name} to {identity}",
            WireOperation(
                path=paths.port_speed(if_name),
                operation=Operation.UPDATE,
                payload={"openconfig-if-ethernet:port-speed": identity},
            ),
        )

    def bridge_interface(
        self,
        if_name: str,
        action: str,
        mode: Optional[str] = None,
        vlans: Optional[list[str]] = None,
    ) -> CompiledChange:
        """Configure or remove L2 switching on a port.

        Raises:
            ModeCardinalityError: Access mode without exactly one VLAN, or
                trunk mode without any
            InvalidVlanIdError: A VLAN outside 1-4094 or not an integer
            ValidationError: Unknown action or mode
        """
        change_action = _coerce(ChangeAction, action, "bridge action")
        path = paths.switched_vlan(if_name)

        if change_action == ChangeAction.DELETE:
            return self._change(
                f"remove bridging from {if_name}",
                WireOperation(path=path, operation=Operation.DELETE),
            )

        bridge_mode = _coerce(BridgeMode, mode, "interface mode")
        vlans = list(vlans or [])

        if bridge_mode == BridgeMode.ACCESS:
            if len(vlans) != 1:
                raise ModeCardinalityError(
                    f"access mode requires exactly one VLAN, got {len(vlans)}"
                )
            config = {"interface-mode": "ACCESS", "access-vlan": parse_vlan_id(vlans[0])}
        else:
            if not vlans:
                raise ModeCardinalityError("trunk mode requires at least one VLAN")
            config = {"interface-mode": "TRUNK", "trunk-vlans": parse_vlan_ids(vlans)}

        vlan_list = ",".join(str(v) for v in vlans)
        return self._change(
            f"{bridge_mode.value} bridging on {if_name} (VLANs: {vlan_list})",
            WireOperation(
                path=path,
                operation=Operation.REPLACE,
                payload={"openconfig-vlan:switched-vlan": {"config": config}},
            ),
        )

    # --- LAG ---

    def lag_member(self, ae_name: str, member_name: str, action: str) -> CompiledChange:
        member_action = _coerce(MemberAction, action, "member action")
        path = paths.aggregate_id(member_name)

        if member_action == MemberAction.REMOVE:
            return self._change(
                f"remove {member_name} from {ae_name}",
                WireOperation(path=path, operation=Operation.DELETE),
            )
        return self._change(
            f"add {member_name} to {ae_name}",
            WireOperation(
                path=path,
                operation=Operation.UPDATE,
                payload={"openconfig-if-aggregate:aggregate-id": ae_name},
            ),
        )

    def lag_lacp(self, ae_name: str, action: str) -> CompiledChange:
        admin = _coerce(AdminAction, action, "LACP action")
        lag_type = "LACP" if admin == AdminAction.ENABLE else "STATIC"
        return self._change(
            f"set {ae_name} lag-type {lag_type}",
            WireOperation(
                path=paths.lag_type(ae_name),
                operation=Operation.UPDATE,
                payload={"openconfig-if-aggregate:lag-type": lag_type},
            ),
        )

    # --- Sub-interfaces ---

    def subinterface(
        self,
        if_name: str,
        index: int,
        action: str,
        address: Optional[str] = None,
    ) -> CompiledChange:
        """Add an L3 sub-interface with an IPv4 address, or delete one.

        Raises:
            InvalidCIDRError: Add without a valid "ip/prefixlen" address
        """
        change_action = _coerce(ChangeAction, action, "sub-interface action")
        index = _index(index)
        path = paths.subinterface(if_name, index)

        if change_action == ChangeAction.DELETE:
            return self._change(
                f"delete {if_name}.{index}",
                WireOperation(path=path, operation=Operation.DELETE),
            )

        if address is None:
            raise InvalidCIDRError("adding a sub-interface requires an ip/prefixlen address")
        ip, prefix_len = parse_cidr(address)

        payload = {
            "openconfig-interfaces:subinterface": [
                {
                    "index": index,
                    "config": {"index": index},
                    "openconfig-if-ip:ipv4": {
                        "addresses": {
                            "address": [
                                {
                                    "ip": ip,
                                    "config": {"ip": ip, "prefix-length": prefix_len},
                                }
                            ]
                        }
                    },
                }
            ]
        }
        return self._change(
            f"add {if_name}.{index} with {ip}/{prefix_len}",
            WireOperation(path=path, operation=Operation.UPDATE, payload=payload),
        )

    def subinterface_admin_state(self, if_name: str, index: int, action: str) -> CompiledChange:
        admin = _coerce(AdminAction, action, "admin action")
        index = _index(index)
        return self._change(
            f"{admin.value} {if_name}.{index}",
            WireOperation(
                path=paths.subinterface_enabled(if_name, index),
                operation=Operation.UPDATE,
                payload={"openconfig-interfaces:enabled": admin == AdminAction.ENABLE},
            ),
        )

    def subinterface_bandwidth(
        self,
        if_name: str,
        index: int,
        mbps: str,
        service: Optional[str] = None,
    ) -> CompiledChange:
        """Bind an output shaping policy to a sub-interface.

        When the service has a bandwidth_shaping entry with valid speeds,
        the requested bandwidth must be one of them.

        Raises:
            InvalidBandwidthError: Not a positive integer, or not allowed
                for the service
        """
        index = _index(index)
        bandwidth = parse_bandwidth(mbps)

        if service:
            shaping = self.intent.bandwidth_shaping.get(service)
            if shaping and shaping.valid_speeds and bandwidth not in shaping.valid_speeds:
                allowed = ", ".join(str(s) for s in shaping.valid_speeds)
                raise InvalidBandwidthError(
                    f"bandwidth {bandwidth} not allowed for service '{service}' "
                    f"(valid: {allowed})"
                )

        policy_name = f"SHAPE-{bandwidth}M"
        return self._change(
            f"shape {if_name}.{index} to {bandwidth} Mb/s",
            WireOperation(
                path=paths.subinterface_qos_output(if_name, index),
                operation=Operation.UPDATE,
                payload={
                    "openconfig-qos:config": {
                        "interface-id": f"{if_name}.{index}",
                        "scheduler-policy": policy_name,
                    }
                },
            ),
        )

    # --- VPN membership ---

    def vpn_membership(self, vrf: "VRF", vpn_name: str, action: str) -> CompiledChange:
        """Add or remove a VPN's route targets on a VRF.

        The VRF must carry freshly read route-target lists; the new lists
        are computed from them and written back in one replace.

        Raises:
            PolicyNotFoundError: If the VPN is not defined in the intent
        """
        change_action = _coerce(ChangeAction, action, "VPN action")
        vpn = self.intent.vpns.get(vpn_name)
        if vpn is None:
            raise PolicyNotFoundError(f"VPN '{vpn_name}' not defined in intent")

        new_import = modify_rt_list(vrf.import_route_targets, vpn.import_target, change_action.value)
        new_export = modify_rt_list(vrf.export_route_targets, vpn.export_target, change_action.value)

        payload = {
            "openconfig-network-instance:config": {
                "afi-safi-name": "IPV4_UNICAST",
                "import-route-target": new_import,
                "export-route-target": new_export,
            }
        }
        direction = "to" if change_action == ChangeAction.ADD else "from"
        return self._change(
            f"{change_action.value} VPN {vpn_name} {direction} VRF {vrf.name}",
            WireOperation(
                path=paths.vrf_ipv4_unicast(vrf.name),
                operation=Operation.REPLACE,
                payload=payload,
            ),
        )

    # --- Firewall policy ---

    def firewall_policy(self, if_name: str, index: int, service: str) -> CompiledChange:
        """Compile and bind the service's ingress/egress filters.

        Operations, in order: ingress ACL set, egress ACL set (each only
        when it has a name and rules), then the sub-interface binding.

        Raises:
            PolicyNotFoundError: Unknown service or no "all" policy scope
            MalformedPolicyError: Policy fields missing or of the wrong type
            UnknownRuleError: A rule name is not in the catalog
            DuplicateSequenceError: Two rules in one filter share a sequence
        """
        index = _index(index)
        svc = self.intent.services.get(service)
        if svc is None:
            raise PolicyNotFoundError(f"service '{service}' not defined in intent")
        policy = svc.policy("all")
        if policy is None:
            raise PolicyNotFoundError(
                f"could not find 'all' interface policy for service '{service}'"
            )

        operations: list[WireOperation] = []
        bound: dict[str, Optional[str]] = {"in": None, "out": None}
        sides = (
            ("in", policy.in_name, policy.in_rule),
            ("out", policy.out_name, policy.out_rule),
        )

        for side, name, rules in sides:
            if not name or not rules:
                continue
            operations.append(
                WireOperation(
                    path=paths.acl_set(name),
                    operation=Operation.REPLACE,
                    payload=build_acl_set(name, rules, self.intent.policy_rules),
                    timeout=ACL_TIMEOUT,
                )
            )
            bound[side] = name

        operations.append(
            WireOperation(
                path=paths.subinterface_acl(if_name, index),
                operation=Operation.REPLACE,
                payload=build_acl_binding(bound["in"], bound["out"]),
                timeout=ACL_TIMEOUT,
            )
        )
        return self._change(
            f"apply {service} firewall policy to {if_name}.{index}",
            *operations,
        )

    # --- Baseline ---

    def baseline(self) -> CompiledChange:
        """Replace the device root with each baseline configlet, in order.

        Raises:
            ConfigletError: If any configlet is missing or invalid
        """
        payloads = [load_configlet(name, self.configlet_dir) for name in BASELINE_CONFIGLETS]
        return self._change(
            f"baseline ({', '.join(BASELINE_CONFIGLETS)})",
            *(
                WireOperation(
                    path=paths.ROOT,
                    operation=Operation.REPLACE,
                    payload=payload,
                    timeout=CONFIGLET_TIMEOUT,
                )
                for payload in payloads
            ),
        )
