"""Schema definitions for intent documents and the resolved per-device intent.

The document models validate the parsed YAML once, at load time. The
resolved intent is a frozen value object built per device by the assembler.
"""
import copy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Annotated, Any, Mapping, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError as PydanticValidationError,
    model_validator,
)

from ..errors import MalformedPolicyError


def _stringify_map(value: Any) -> Any:
    """YAML turns `asn: 64512` into an int; aliases are always strings."""
    if isinstance(value, dict):
        return {str(k): "" if v is None else str(v) for k, v in value.items()}
    return value


def _stringify_list(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return value


def _stringify_list_map(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            str(k): _stringify_list(v) if v is not None else []
            for k, v in value.items()
        }
    return value


StrMap = Annotated[dict[str, str], BeforeValidator(_stringify_map)]
StrList = Annotated[list[str], BeforeValidator(_stringify_list)]
StrListMap = Annotated[dict[str, list[str]], BeforeValidator(_stringify_list_map)]


class IntentModel(BaseModel):
    """Base for intent document models.

    Empty YAML sections (`generic_alias:` with nothing under it) load as
    None; they are treated as absent so field defaults apply.
    """

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


# --- network_intent.yaml ---

class HealthCheck(IntentModel):
    method: str = ""


class InterfacePolicy(BaseModel):
    """Filter names and ordered rule lists for one interface-policy scope."""

    model_config = ConfigDict(strict=True, extra="ignore")

    in_name: str
    out_name: str
    in_rule: list[str]
    out_rule: list[str]


class Service(IntentModel):
    """Named bundle describing a traffic class."""

    description: str = ""
    service_type: str = ""
    valid_ip: StrList = Field(default_factory=list)
    interface_policy: dict[str, Any] = Field(default_factory=dict)
    routing_behavior: dict[str, Any] = Field(default_factory=dict)
    prefix_list_alias: StrListMap = Field(default_factory=dict)

    _policies: dict[str, InterfacePolicy] = PrivateAttr(default_factory=dict)
    _policy_problems: dict[str, str] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        for scope, raw in self.interface_policy.items():
            if raw is None:
                continue  # Empty scope is absent
            if not isinstance(raw, dict):
                self._policy_problems[scope] = (
                    f"expected a mapping, got {type(raw).__name__}"
                )
                continue
            try:
                self._policies[scope] = InterfacePolicy.model_validate(raw)
            except PydanticValidationError as e:
                self._policy_problems[scope] = "; ".join(
                    f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                    for err in e.errors()
                )

    def policy(self, scope: str = "all") -> Optional[InterfacePolicy]:
        """Return the typed policy for a scope, or None if the scope is absent.

        Raises:
            MalformedPolicyError: If the scope exists but failed validation
        """
        if scope in self._policy_problems:
            raise MalformedPolicyError(
                f"interface policy '{scope}' is malformed: "
                f"{self._policy_problems[scope]}"
            )
        return self._policies.get(scope)

    @property
    def default_vpns(self) -> list[str]:
        """VPNs a VRF of this service joins by default."""
        vpns = self.routing_behavior.get("vrf_default_vpn") or []
        if not isinstance(vpns, list):
            return []
        return [str(v) for v in vpns]


class Bandwidth(IntentModel):
    valid_speeds: list[int] = Field(default_factory=list)


class PolicyRule(IntentModel):
    """One ACL rule definition from the global catalog."""

    application: str = ""
    sequence: int
    match: dict[str, Any] = Field(default_factory=dict)
    cos: str = ""
    policer: str = ""
    action: str = "accept"


class CoS(IntentModel):
    class82: str = ""
    color82: str = ""
    mark82: str = ""


class Policer(IntentModel):
    bandwidth: str = ""
    burst: str = ""


class VLANInfo(IntentModel):
    description: str = ""
    type: str = ""
    prefix_list: StrList = Field(default_factory=list)


class BridgeDomain(IntentModel):
    baseline_vlans: StrList = Field(default_factory=list)
    vlans: dict[int, VLANInfo] = Field(default_factory=dict)


class Bridge(IntentModel):
    domains: dict[str, BridgeDomain] = Field(default_factory=dict)


class Region(IntentModel):
    pe_as_num: int = 0
    pe_as_name: str = ""
    ip_mtu_transit: int = 0
    generic_alias: StrMap = Field(default_factory=dict)
    prefix_lists: StrListMap = Field(default_factory=dict)
    bridge: Bridge = Field(default_factory=Bridge)
    management: StrListMap = Field(default_factory=dict)


class VPN(IntentModel):
    description: str = ""
    import_target: str = ""
    export_target: str = ""
    export_prefix_list: StrList = Field(default_factory=list)
    permission: StrList = Field(default_factory=list)
    service: StrList = Field(default_factory=list)


class NetworkIntent(IntentModel):
    """Global network policy (network_intent.yaml)."""

    version: str = ""
    lock_dir: str = ""
    super_users: StrList = Field(default_factory=list)
    reverse_exclude: StrList = Field(default_factory=list)
    permission: StrListMap = Field(default_factory=dict)
    health_checks: dict[str, HealthCheck] = Field(default_factory=dict)
    authentication: dict[str, Any] = Field(default_factory=dict)
    services: dict[str, Service] = Field(default_factory=dict)
    prefix_service_mapping: StrListMap = Field(default_factory=dict)
    bandwidth_shaping: dict[str, Bandwidth] = Field(default_factory=dict)
    qos_profiles: StrMap = Field(default_factory=dict)
    prefix_lists: StrListMap = Field(default_factory=dict)
    policy_rule_lists: StrListMap = Field(default_factory=dict)
    policy_rules: dict[str, PolicyRule] = Field(default_factory=dict)
    cos: dict[str, CoS] = Field(default_factory=dict)
    policers: dict[str, Policer] = Field(default_factory=dict)
    regions: dict[str, Region] = Field(default_factory=dict)
    vlans: dict[int, VLANInfo] = Field(default_factory=dict)
    generic_alias: StrMap = Field(default_factory=dict)
    communities: StrMap = Field(default_factory=dict)
    vpns: dict[str, VPN] = Field(default_factory=dict)


# --- site_intent.yaml ---

class Site(IntentModel):
    route_reflectors: StrList = Field(default_factory=list)
    site_ip: str = ""


class SiteRegion(IntentModel):
    sites: dict[str, Site] = Field(default_factory=dict)


class SiteIntent(IntentModel):
    regions: dict[str, SiteRegion] = Field(default_factory=dict)


# --- platform.yaml ---

class CardProfile(IntentModel):
    description: str = ""
    port_type: str = ""
    intf_proto: str = ""
    intf_encaps: StrList = Field(default_factory=list)
    intf_symb: str = ""
    maximum_mtu: int = 0
    queue_type: str = ""
    valid_ports: StrList = Field(default_factory=list)
    valid_speeds: StrList = Field(default_factory=list)
    valid_subifs: StrList = Field(default_factory=list)
    bridging: bool = False


class AEProfile(IntentModel):
    description: str = ""
    bridge_mode: str = ""
    trunk_type: str = ""
    designated_members: StrList = Field(default_factory=list)


class Chassis(IntentModel):
    config_class: str = ""
    chassis_class: str = ""
    node_type: str = ""
    l2_capable: bool = False
    cards: dict[str, CardProfile] = Field(default_factory=dict)
    ae_profiles: dict[str, dict[str, AEProfile]] = Field(default_factory=dict)


class Vendor(IntentModel):
    chassis: dict[str, Chassis] = Field(default_factory=dict)


class PlatformProfiles(IntentModel):
    vendors: dict[str, Vendor] = Field(default_factory=dict)

    def find_chassis(self, vendor: str, chassis: str) -> Optional[Chassis]:
        return self.vendors.get(vendor, Vendor()).chassis.get(chassis)


# --- profiles/<device>.yaml ---

class CoreBGP(IntentModel):
    peer_groups: StrListMap = Field(default_factory=dict)


class DeviceProfile(IntentModel):
    is_managed: bool = True
    region: str
    site: str = ""
    mgmt_ip: str = ""
    vendor: str = ""
    chassis: str = ""
    is_router: bool = False
    is_bridge: bool = False
    is_border_router: bool = False
    is_route_reflector: bool = False
    affinity: str = ""
    vlan_port_mapping: StrListMap = Field(default_factory=dict)
    bridge_domain: str = ""
    ae_profile: str = ""
    generic_alias: StrMap = Field(default_factory=dict)
    prefix_lists: StrListMap = Field(default_factory=dict)
    core_bgp: Optional[CoreBGP] = None


@dataclass
class GlobalIntent:
    """All intent documents for a network, before per-device resolution."""
    network: NetworkIntent
    site: SiteIntent = field(default_factory=SiteIntent)
    platform: PlatformProfiles = field(default_factory=PlatformProfiles)
    device_profiles: dict[str, DeviceProfile] = field(default_factory=dict)

    def resolve(self, device_name: str) -> "ResolvedIntent":
        """Resolve the intent for one device (see assembler.assemble)."""
        from .assembler import assemble
        return assemble(self, device_name)


# --- Resolved intent ---

def _freeze_value(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return copy.deepcopy(value)


def _frozen(mapping: Optional[Mapping]) -> Mapping:
    return MappingProxyType({k: _freeze_value(v) for k, v in (mapping or {}).items()})


@dataclass(frozen=True)
class ResolvedIntent:
    """Fully merged, alias-substituted view of intent for one device.

    Built once per session; read-only afterwards. Mapping fields are
    read-only proxies over private copies, list values become tuples and
    intent models are deep-copied, so two sessions never share mutable
    state with each other or with the loaded documents.
    """
    device_name: str
    region: str
    site: str = ""
    mgmt_ip: str = ""
    is_router: bool = False
    is_bridge: bool = False
    is_border_router: bool = False
    is_route_reflector: bool = False
    aliases: Mapping[str, str] = field(default_factory=dict)
    reverse_aliases: Mapping[str, str] = field(default_factory=dict)
    prefix_lists: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    communities: Mapping[str, str] = field(default_factory=dict)
    services: Mapping[str, Service] = field(default_factory=dict)
    vpns: Mapping[str, VPN] = field(default_factory=dict)
    prefix_service_mapping: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    permission: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    policy_rules: Mapping[str, PolicyRule] = field(default_factory=dict)
    bandwidth_shaping: Mapping[str, Bandwidth] = field(default_factory=dict)
    vlan_port_mapping: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    active_bridge_domain: Optional[BridgeDomain] = None
    active_ae_profile: Optional[Mapping[str, AEProfile]] = None
    chassis: Optional[Chassis] = None
    core_bgp: Optional[CoreBGP] = None

    def __post_init__(self) -> None:
        for name in (
            "aliases",
            "reverse_aliases",
            "prefix_lists",
            "communities",
            "services",
            "vpns",
            "prefix_service_mapping",
            "permission",
            "policy_rules",
            "bandwidth_shaping",
            "vlan_port_mapping",
        ):
            object.__setattr__(self, name, _frozen(getattr(self, name)))
        if self.active_ae_profile is not None:
            object.__setattr__(
                self, "active_ae_profile", _frozen(self.active_ae_profile)
            )
        for name in ("active_bridge_domain", "chassis", "core_bgp"):
            object.__setattr__(self, name, copy.deepcopy(getattr(self, name)))

    @property
    def config_class(self) -> str:
        if self.chassis and self.chassis.config_class:
            return self.chassis.config_class
        return self.aliases.get("config-class", "")

    def display(self, value: str) -> str:
        """Return the symbolic alias for a resolved value, if one exists."""
        return self.reverse_aliases.get(value, value)
