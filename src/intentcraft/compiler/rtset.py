"""Route-target list algebra for VRF membership changes."""
from typing import Iterable

ADD = "add"
DELETE = "delete"


def modify_rt_list(current: Iterable[str], item: str, action: str) -> list[str]:
    """Add or remove one route target.

    add: current | {item}; delete: current - {item}. Duplicates in current
    collapse. The result is sorted so repeated runs produce identical
    payloads.

    Raises:
        ValueError: If action is neither "add" nor "delete"
    """
    targets = set(current)
    if action == ADD:
        targets.add(item)
    elif action == DELETE:
        targets.discard(item)
    else:
        raise ValueError(f"Unknown route-target action: {action!r}")
    return sorted(targets)
