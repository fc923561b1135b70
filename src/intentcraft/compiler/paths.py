"""OpenConfig path construction and parsing.

Paths are slash-separated segments. Each segment is a node name optionally
followed by one or more bracketed key selectors:

    interfaces/interface[name=ge-0/0/1]/config/enabled
    acl/acl-sets/acl-set[name=IN-FILTER][type=ACL_IPV4]

Selector values may themselves contain slashes (interface names do), so
splitting honours bracket depth.
"""
import re
from typing import NamedTuple

from ..errors import ValidationError

ROOT = "/"

_SEGMENT_PATTERN = re.compile(r"^([A-Za-z0-9_:.-]+)((?:\[[^\[\]=]+=[^\[\]]*\])*)$")
_SELECTOR_PATTERN = re.compile(r"\[([^\[\]=]+)=([^\[\]]*)\]")


class PathElem(NamedTuple):
    """One parsed path segment."""
    name: str
    keys: dict[str, str]


def _split_segments(path: str) -> list[str]:
    segments: list[str] = []
    current: list[str] = []
    depth = 0
    for ch in path:
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth < 0:
                raise ValidationError(f"Unbalanced ']' in path: {path}")
        if ch == "/" and depth == 0:
            segments.append("".join(current))
            current = []
            continue
        current.append(ch)
    if depth != 0:
        raise ValidationError(f"Unbalanced '[' in path: {path}")
    segments.append("".join(current))
    return segments


def parse_path(path: str) -> list[PathElem]:
    """Parse a path into its elements.

    The root path "/" parses to an empty list. A leading slash is optional.

    Raises:
        ValidationError: If a segment is empty or malformed
    """
    stripped = path.strip()
    if stripped in ("", ROOT):
        return []
    if stripped.startswith("/"):
        stripped = stripped[1:]

    elems: list[PathElem] = []
    for segment in _split_segments(stripped):
        match = _SEGMENT_PATTERN.match(segment)
        if not match:
            raise ValidationError(f"Malformed path segment '{segment}' in {path}")
        keys = {
            k: v.strip("'") for k, v in _SELECTOR_PATTERN.findall(match.group(2))
        }
        elems.append(PathElem(match.group(1), keys))
    return elems


def format_path(elems: list[PathElem]) -> str:
    """Inverse of parse_path (without a leading slash)."""
    if not elems:
        return ROOT
    return "/".join(
        elem.name + "".join(f"[{k}={v}]" for k, v in elem.keys.items())
        for elem in elems
    )


# --- Builders ---

def interface(if_name: str) -> str:
    return f"interfaces/interface[name={if_name}]"


def interface_enabled(if_name: str) -> str:
    return f"{interface(if_name)}/config/enabled"


def port_speed(if_name: str) -> str:
    return f"{interface(if_name)}/ethernet/config/port-speed"


def switched_vlan(if_name: str) -> str:
    return f"{interface(if_name)}/ethernet/switched-vlan"


def aggregate_id(if_name: str) -> str:
    return f"{interface(if_name)}/ethernet/config/aggregate-id"


def lag_type(if_name: str) -> str:
    return f"{interface(if_name)}/aggregation/config/lag-type"


def subinterface(if_name: str, index: int) -> str:
    return f"{interface(if_name)}/subinterfaces/subinterface[index={index}]"


def subinterface_enabled(if_name: str, index: int) -> str:
    return f"{subinterface(if_name, index)}/config/enabled"


def subinterface_acl(if_name: str, index: int) -> str:
    return f"{subinterface(if_name, index)}/ipv4/acl"


def subinterface_qos_output(if_name: str, index: int) -> str:
    return f"qos/interfaces/interface[interface-id={if_name}.{index}]/output/config"


def acl_set(name: str) -> str:
    return f"acl/acl-sets/acl-set[name={name}][type=ACL_IPV4]"


def network_instance(name: str) -> str:
    return f"network-instances/network-instance[name={name}]"


def vrf_ipv4_unicast(vrf_name: str) -> str:
    return (
        f"{network_instance(vrf_name)}/afi-safis/afi-safi"
        f"[afi-safi-name=IPV4_UNICAST]/config"
    )
