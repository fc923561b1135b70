"""In-memory transport for dry runs and tests.

Reads are served from a path -> response map; writes are recorded in
order. A path can be set to fail so partial-apply behaviour can be
exercised without a device.
"""
import copy
import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..compiler.schema import Operation
from ..errors import TransportError
from .base import DEFAULT_READ_TIMEOUT, TransportGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordedWrite:
    path: str
    operation: Operation
    payload: Optional[dict[str, Any]]
    timeout: float


class MemoryTransport(TransportGateway):
    """Transport backed by dictionaries."""

    def __init__(
        self,
        responses: Optional[dict[str, dict[str, Any]]] = None,
        device_id: str = "memory",
    ):
        super().__init__(device_id)
        self.responses: dict[str, dict[str, Any]] = dict(responses or {})
        self.writes: list[RecordedWrite] = []
        self.reads: list[str] = []
        self.fail_paths: dict[str, str] = {}

    def fail_on(self, path: str, message: str = "simulated failure") -> None:
        """Make every read or write of path raise TransportError."""
        self.fail_paths[path] = message

    async def read(self, path: str, timeout: float = DEFAULT_READ_TIMEOUT) -> dict[str, Any]:
        self.reads.append(path)
        if path in self.fail_paths:
            raise TransportError(self.fail_paths[path], path=path, operation="read")
        return copy.deepcopy(self.responses.get(path, {}))

    async def write(
        self,
        path: str,
        operation: Operation,
        payload: Optional[dict[str, Any]],
        timeout: float,
    ) -> None:
        if path in self.fail_paths:
            raise TransportError(
                self.fail_paths[path], path=path, operation=operation.value
            )
        self.writes.append(
            RecordedWrite(path, operation, copy.deepcopy(payload), timeout)
        )
        logger.debug(f"Recorded {operation.value} {path}")
