"""Intent resolution - layered intent documents to per-device intent.

Usage:
    from intentcraft.intent import load_global_intent

    intent = load_global_intent("./intent")
    resolved = intent.resolve("pe1-east")
    resolved.aliases["pe-asnum"]        # "64512"
    resolved.vpns["blue"].import_target  # "64512:100"
"""

from .assembler import assemble
from .loader import find_intent_dir, load_global_intent
from .merger import merge_layers, merge_maps, region_aliases
from .resolver import MAX_DEPTH, AliasResolver, build_reverse, resolve, resolve_map
from .schema import (
    DeviceProfile,
    GlobalIntent,
    InterfacePolicy,
    NetworkIntent,
    PlatformProfiles,
    PolicyRule,
    Region,
    ResolvedIntent,
    Service,
    SiteIntent,
    VPN,
)

__all__ = [
    # Loading and assembly
    "load_global_intent",
    "find_intent_dir",
    "assemble",
    # Resolver
    "AliasResolver",
    "resolve",
    "resolve_map",
    "build_reverse",
    "MAX_DEPTH",
    # Merger
    "merge_maps",
    "merge_layers",
    "region_aliases",
    # Schema
    "GlobalIntent",
    "NetworkIntent",
    "SiteIntent",
    "PlatformProfiles",
    "DeviceProfile",
    "Region",
    "Service",
    "InterfacePolicy",
    "PolicyRule",
    "VPN",
    "ResolvedIntent",
]
