"""Transport gateway abstraction.

A gateway executes structured reads and writes against one device. It
never retries: a failed or timed-out call surfaces as TransportError and
the caller decides what to do.
"""
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from ..compiler.schema import Operation

logger = logging.getLogger(__name__)

DEFAULT_READ_TIMEOUT = 10.0


@dataclass
class TransportConfig:
    """Connection settings for a device's management endpoint."""
    host: str
    username: str = ""
    password: Optional[str] = None
    password_env: str = "INTENTCRAFT_PASSWORD"
    port: int = 443
    scheme: str = "https"
    verify_ssl: bool = True
    base_path: str = "/restconf/data"

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}{self.base_path}"


class TransportGateway(ABC):
    """Abstract base class for device transports."""

    def __init__(self, device_id: str = ""):
        self.device_id = device_id
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """Open the underlying connection (no-op by default)."""
        self._connected = True

    async def close(self) -> None:
        """Close the underlying connection."""
        self._connected = False

    @abstractmethod
    async def read(self, path: str, timeout: float = DEFAULT_READ_TIMEOUT) -> dict[str, Any]:
        """Read the subtree at path.

        Returns:
            Decoded JSON (module-prefixed top-level keys); empty if absent

        Raises:
            TransportError: On any failure or timeout
        """
        pass

    @abstractmethod
    async def write(
        self,
        path: str,
        operation: Operation,
        payload: Optional[dict[str, Any]],
        timeout: float,
    ) -> None:
        """Apply one write.

        Raises:
            TransportError: On any failure or timeout
        """
        pass

    # Context manager support
    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
