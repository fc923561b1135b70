"""Layered merge of intent namespaces.

Layers are applied lowest precedence first (global, region, device). Merge
is flat: a colliding key is replaced wholesale, including list-valued
entries such as prefix lists. Inputs are never mutated.
"""
from typing import Mapping, Optional, TypeVar

V = TypeVar("V")


def merge_maps(*layers: Optional[Mapping[str, V]]) -> dict[str, V]:
    """Merge any number of flat maps; the last layer wins per key.

    Associative: merge_maps(a, merge_maps(b, c)) == merge_maps(merge_maps(a, b), c).
    None layers are skipped.
    """
    merged: dict[str, V] = {}
    for layer in layers:
        if layer:
            merged.update(layer)
    return merged


def merge_layers(
    global_layer: Optional[Mapping[str, V]],
    region_layer: Optional[Mapping[str, V]],
    device_layer: Optional[Mapping[str, V]],
) -> dict[str, V]:
    """Merge the three intent layers with device > region > global precedence."""
    return merge_maps(global_layer, region_layer, device_layer)


def region_aliases(as_number: int, as_name: str) -> dict[str, str]:
    """Aliases synthesized from a region's AS definition."""
    return {
        "pe-asnum": str(as_number),
        "pe-asname": as_name,
        "PE-ASNAME": as_name.upper(),
    }
