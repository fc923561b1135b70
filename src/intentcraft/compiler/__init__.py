"""Configuration compiler - resolved intent plus an action to wire operations.

Usage:
    from intentcraft.compiler import ConfigCompiler

    compiler = ConfigCompiler(resolved)
    change = compiler.subinterface("ge-0/0/1", 100, "add", "10.0.0.1/30")
    change.operations[0].path
    # interfaces/interface[name=ge-0/0/1]/subinterfaces/subinterface[index=100]
"""

from .acl import build_acl_binding, build_acl_entry, build_acl_set
from .compiler import BASELINE_CONFIGLETS, ConfigCompiler, load_configlet
from .paths import PathElem, format_path, parse_path
from .rtset import modify_rt_list
from .schema import (
    ACL_TIMEOUT,
    CONFIGLET_TIMEOUT,
    SINGLE_OBJECT_TIMEOUT,
    AdminAction,
    BridgeMode,
    ChangeAction,
    CompiledChange,
    MemberAction,
    Operation,
    WireOperation,
)
from .validator import (
    SPEED_IDENTITIES,
    parse_bandwidth,
    parse_cidr,
    parse_speed,
    parse_vlan_id,
    parse_vlan_ids,
)

__all__ = [
    # Main compiler
    "ConfigCompiler",
    "load_configlet",
    "BASELINE_CONFIGLETS",
    # Schema
    "Operation",
    "WireOperation",
    "CompiledChange",
    "AdminAction",
    "MemberAction",
    "ChangeAction",
    "BridgeMode",
    "SINGLE_OBJECT_TIMEOUT",
    "ACL_TIMEOUT",
    "CONFIGLET_TIMEOUT",
    # Components
    "PathElem",
    "parse_path",
    "format_path",
    "modify_rt_list",
    "build_acl_set",
    "build_acl_entry",
    "build_acl_binding",
    "parse_vlan_id",
    "parse_vlan_ids",
    "parse_cidr",
    "parse_speed",
    "parse_bandwidth",
    "SPEED_IDENTITIES",
]
