"""Resolved intent assembler.

Builds one immutable ResolvedIntent per device from the global intent
documents:

1. Look up the device profile and its region
2. Merge aliases and prefix lists (global, region AS aliases, region, device)
3. Resolve communities and VPN route-target templates
4. Select the active bridge domain and AE profile
5. Copy through catalogs that are looked up by name at compile time

Resolution is all-or-nothing: any failure raises a ResolutionError and no
partial intent is returned.
"""
import logging
from typing import Mapping, Optional

from ..errors import (
    ResolutionError,
    UnknownBridgeDomainError,
    UnknownDeviceError,
    UnknownRegionError,
)
from .merger import merge_layers, merge_maps, region_aliases
from .resolver import AliasResolver
from .schema import (
    AEProfile,
    BridgeDomain,
    Chassis,
    DeviceProfile,
    GlobalIntent,
    Region,
    ResolvedIntent,
    VPN,
)

logger = logging.getLogger(__name__)


def lookup_device(intent: GlobalIntent, device_name: str) -> DeviceProfile:
    profile = intent.device_profiles.get(device_name)
    if profile is None:
        raise UnknownDeviceError(device_name)
    return profile


def lookup_region(intent: GlobalIntent, profile: DeviceProfile, device_name: str = "") -> Region:
    region = intent.network.regions.get(profile.region)
    if region is None:
        raise UnknownRegionError(profile.region, device_name)
    return region


def merge_aliases(intent: GlobalIntent, region: Region, profile: DeviceProfile) -> dict[str, str]:
    """Merge alias layers.

    Region AS aliases are folded in after the global layer and before the
    region's own generic aliases, so both the region and the device can
    override them.
    """
    region_layer = merge_maps(
        region_aliases(region.pe_as_num, region.pe_as_name),
        region.generic_alias,
    )
    return merge_layers(intent.network.generic_alias, region_layer, profile.generic_alias)


def resolve_vpns(vpns: Mapping[str, VPN], resolver: AliasResolver) -> dict[str, VPN]:
    return {
        name: vpn.model_copy(
            update={
                "import_target": resolver.resolve(vpn.import_target),
                "export_target": resolver.resolve(vpn.export_target),
            }
        )
        for name, vpn in vpns.items()
    }


def select_bridge_domain(region: Region, profile: DeviceProfile) -> Optional[BridgeDomain]:
    """Pick the device's bridge domain from its region.

    An empty name means the device bridges nothing; an unknown name is fatal.
    """
    if not profile.bridge_domain:
        return None
    domain = region.bridge.domains.get(profile.bridge_domain)
    if domain is None:
        raise UnknownBridgeDomainError(profile.bridge_domain, profile.region)
    return domain


def select_chassis(intent: GlobalIntent, profile: DeviceProfile) -> Optional[Chassis]:
    if not profile.vendor or not profile.chassis:
        return None
    chassis = intent.platform.find_chassis(profile.vendor, profile.chassis)
    if chassis is None:
        raise ResolutionError(
            f"chassis '{profile.vendor}/{profile.chassis}' not found in platform profiles"
        )
    return chassis


def select_ae_profile(
    chassis: Optional[Chassis], profile: DeviceProfile
) -> Optional[dict[str, AEProfile]]:
    if not profile.ae_profile:
        return None
    if chassis is None:
        raise ResolutionError(
            f"AE profile '{profile.ae_profile}' requested but device has no chassis"
        )
    selected = chassis.ae_profiles.get(profile.ae_profile)
    if selected is None:
        raise ResolutionError(
            f"AE profile '{profile.ae_profile}' not defined for chassis "
            f"'{profile.vendor}/{profile.chassis}'"
        )
    return dict(selected)


def assemble(intent: GlobalIntent, device_name: str) -> ResolvedIntent:
    """Resolve the intent for one device.

    Args:
        intent: Loaded global intent documents
        device_name: Device profile name

    Returns:
        ResolvedIntent for the device

    Raises:
        ResolutionError: Unknown device, region, bridge domain, chassis or
            AE profile, or a cyclic alias
    """
    logger.info(f"Resolving intent for device {device_name}")
    network = intent.network

    profile = lookup_device(intent, device_name)
    region = lookup_region(intent, profile, device_name)

    aliases = merge_aliases(intent, region, profile)
    prefix_lists = merge_layers(network.prefix_lists, region.prefix_lists, profile.prefix_lists)

    resolver = AliasResolver(aliases, network.reverse_exclude)
    communities = resolver.resolve_map(network.communities)
    vpns = resolve_vpns(network.vpns, resolver)

    bridge_domain = select_bridge_domain(region, profile)
    chassis = select_chassis(intent, profile)
    ae_profile = select_ae_profile(chassis, profile)

    resolved = ResolvedIntent(
        device_name=device_name,
        region=profile.region,
        site=profile.site,
        mgmt_ip=profile.mgmt_ip,
        is_router=profile.is_router,
        is_bridge=profile.is_bridge,
        is_border_router=profile.is_border_router,
        is_route_reflector=profile.is_route_reflector,
        aliases=aliases,
        reverse_aliases=resolver.reverse,
        prefix_lists=prefix_lists,
        communities=communities,
        services=network.services,
        vpns=vpns,
        prefix_service_mapping=network.prefix_service_mapping,
        permission=network.permission,
        policy_rules=network.policy_rules,
        bandwidth_shaping=network.bandwidth_shaping,
        vlan_port_mapping=profile.vlan_port_mapping,
        active_bridge_domain=bridge_domain,
        active_ae_profile=ae_profile,
        chassis=chassis,
        core_bgp=profile.core_bgp,
    )

    logger.info(
        f"Intent resolved for {device_name}: {len(aliases)} aliases, "
        f"{len(vpns)} VPNs, bridge domain={profile.bridge_domain or 'none'}"
    )
    return resolved
