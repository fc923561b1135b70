"""Argument validation for compiler actions.

Every check here runs before any wire operation is built, so invalid input
never reaches the device.
"""
import ipaddress
import re
from typing import Iterable

from ..errors import (
    InvalidBandwidthError,
    InvalidCIDRError,
    InvalidSpeedError,
    InvalidVlanIdError,
)

VLAN_MIN = 1
VLAN_MAX = 4094

_UNSIGNED = re.compile(r"\d+", re.ASCII)

# Port speed in Mb/s -> openconfig-if-ethernet identity
SPEED_IDENTITIES = {
    10: "SPEED_10MB",
    100: "SPEED_100MB",
    1000: "SPEED_1GB",
    2500: "SPEED_2500MB",
    5000: "SPEED_5GB",
    10000: "SPEED_10GB",
    25000: "SPEED_25GB",
    40000: "SPEED_40GB",
    50000: "SPEED_50GB",
    100000: "SPEED_100GB",
    200000: "SPEED_200GB",
    400000: "SPEED_400GB",
    800000: "SPEED_800GB",
}


def _parse_unsigned(value) -> int:
    text = str(value).strip()
    if not _UNSIGNED.fullmatch(text):
        raise ValueError(text)
    return int(text)


def parse_vlan_id(value) -> int:
    """Parse one VLAN ID (1-4094).

    Raises:
        InvalidVlanIdError: If not an unsigned integer in range
    """
    try:
        vlan_id = _parse_unsigned(value)
    except ValueError:
        raise InvalidVlanIdError(f"Invalid VLAN ID {value!r}: not an unsigned integer")
    if vlan_id < VLAN_MIN or vlan_id > VLAN_MAX:
        raise InvalidVlanIdError(
            f"Invalid VLAN ID {vlan_id}: must be between {VLAN_MIN} and {VLAN_MAX}"
        )
    return vlan_id


def parse_vlan_ids(values: Iterable) -> list[int]:
    """Parse a list of VLAN IDs, preserving order."""
    return [parse_vlan_id(v) for v in values]


def parse_cidr(cidr: str) -> tuple[str, int]:
    """Split "ip/prefixlen" into the address and a prefix length.

    Host bits may be set ("10.0.0.1/30" is an interface address, not a
    network).

    Raises:
        InvalidCIDRError: If the separator is missing, the address is not
            IPv4 or the prefix length is not 0-32
    """
    parts = str(cidr).strip().split("/")
    if len(parts) != 2:
        raise InvalidCIDRError(f"Invalid CIDR format: {cidr!r} (expected ip/prefixlen)")
    address, prefix = parts

    try:
        ipaddress.IPv4Address(address)
    except ValueError:
        raise InvalidCIDRError(f"Invalid IPv4 address in {cidr!r}: {address!r}")

    try:
        prefix_len = _parse_unsigned(prefix)
    except ValueError:
        raise InvalidCIDRError(f"Invalid prefix length in {cidr!r}: {prefix!r}")
    if prefix_len > 32:
        raise InvalidCIDRError(f"Invalid prefix length in {cidr!r}: must be 0-32")

    return address, prefix_len


def parse_speed(speed) -> str:
    """Map a numeric speed in Mb/s to its SPEED_* identity.

    Raises:
        InvalidSpeedError: If not numeric or not a known port speed
    """
    try:
        mbps = _parse_unsigned(speed)
    except ValueError:
        raise InvalidSpeedError(f"Invalid speed value: {speed!r}")
    identity = SPEED_IDENTITIES.get(mbps)
    if identity is None:
        valid = ", ".join(str(s) for s in SPEED_IDENTITIES)
        raise InvalidSpeedError(f"Unsupported speed {mbps}: valid speeds are {valid}")
    return identity


def parse_bandwidth(bandwidth) -> int:
    """Parse a positive bandwidth in Mb/s.

    Raises:
        InvalidBandwidthError: If not a positive integer
    """
    try:
        mbps = _parse_unsigned(bandwidth)
    except ValueError:
        raise InvalidBandwidthError(f"Invalid bandwidth value: {bandwidth!r}")
    if mbps == 0:
        raise InvalidBandwidthError("Bandwidth must be greater than zero")
    return mbps
