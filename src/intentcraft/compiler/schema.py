"""Schema definitions for compiled configuration changes.

A compiled change is an ordered list of wire operations, each addressing a
single subtree of the device's OpenConfig model.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Operation(str, Enum):
    """Remote write semantics."""
    UPDATE = "update"    # Merge payload into the subtree
    REPLACE = "replace"  # Replace the whole subtree with payload
    DELETE = "delete"    # Remove the subtree (no payload)


class AdminAction(str, Enum):
    ENABLE = "enable"
    DISABLE = "disable"


class MemberAction(str, Enum):
    ADD = "add"
    REMOVE = "remove"


class ChangeAction(str, Enum):
    """Add or delete an object (sub-interface, bridge config, VPN membership)."""
    ADD = "add"
    DELETE = "delete"


class BridgeMode(str, Enum):
    ACCESS = "access"
    TRUNK = "trunk"


# Per-operation timeouts in seconds
SINGLE_OBJECT_TIMEOUT = 10.0
ACL_TIMEOUT = 30.0
CONFIGLET_TIMEOUT = 15.0


@dataclass(frozen=True)
class WireOperation:
    """One addressable remote write."""
    path: str
    operation: Operation
    payload: Optional[dict[str, Any]] = None
    timeout: float = SINGLE_OBJECT_TIMEOUT

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "path": self.path,
            "operation": self.operation.value,
            "payload": self.payload,
            "timeout": self.timeout,
        }


@dataclass
class CompiledChange:
    """Ordered wire operations produced for one action."""
    description: str
    operations: list[WireOperation] = field(default_factory=list)

    @property
    def total_operations(self) -> int:
        return len(self.operations)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "description": self.description,
            "operations": [op.to_dict() for op in self.operations],
        }
