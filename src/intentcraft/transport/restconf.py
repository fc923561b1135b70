"""RESTCONF transport over HTTPS using OpenConfig JSON.

Write semantics map onto HTTP methods:

    UPDATE  -> PATCH   (merge)
    REPLACE -> PUT     (replace subtree)
    DELETE  -> DELETE

Paths in the compiler grammar are converted to RESTCONF data URLs:

    interfaces/interface[name=ge-0/0/1]/config/enabled
      -> /restconf/data/openconfig-interfaces:interfaces/interface=ge-0%2F0%2F1/config/enabled
    acl/acl-sets/acl-set[name=IN][type=ACL_IPV4]
      -> /restconf/data/openconfig-acl:acl/acl-sets/acl-set=IN,ACL_IPV4
"""
import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from ..compiler.paths import ROOT, parse_path
from ..compiler.schema import Operation
from ..errors import TransportError, ValidationError
from .base import DEFAULT_READ_TIMEOUT, TransportConfig, TransportGateway

logger = logging.getLogger(__name__)

HEADERS = {
    "Accept": "application/yang-data+json",
    "Content-Type": "application/yang-data+json",
}

# Top-level containers and the YANG module that defines them
MODULES = {
    "interfaces": "openconfig-interfaces",
    "acl": "openconfig-acl",
    "network-instances": "openconfig-network-instance",
    "qos": "openconfig-qos",
    "system": "openconfig-system",
    "components": "openconfig-platform",
}

_METHODS = {
    Operation.UPDATE: "PATCH",
    Operation.REPLACE: "PUT",
    Operation.DELETE: "DELETE",
}


def to_resource(path: str) -> str:
    """Convert a compiler path to a RESTCONF resource path (no leading slash).

    Raises:
        ValidationError: If the path is malformed
    """
    elems = parse_path(path)
    segments = []
    for i, elem in enumerate(elems):
        name = elem.name
        if i == 0 and ":" not in name and name in MODULES:
            name = f"{MODULES[name]}:{name}"
        if elem.keys:
            values = ",".join(quote(v, safe="") for v in elem.keys.values())
            name = f"{name}={values}"
        segments.append(name)
    return "/".join(segments)


class RestconfTransport(TransportGateway):
    """Transport for devices exposing OpenConfig over RESTCONF."""

    def __init__(
        self,
        config: TransportConfig,
        device_id: str = "",
        client_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(device_id or config.host)
        self.config = config
        self._client_transport = client_transport
        self._http: Optional[httpx.AsyncClient] = None

    async def connect(self) -> None:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self.config.base_url,
                auth=(self.config.username, self.config.get_password()),
                headers=HEADERS,
                verify=self.config.verify_ssl,
                transport=self._client_transport,
            )
        self._connected = True
        logger.info(f"RESTCONF session opened to {self.config.base_url}")

    async def close(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None
        self._connected = False
        logger.info(f"RESTCONF session to {self.device_id} closed")

    def _url(self, path: str, operation: str) -> str:
        try:
            resource = to_resource(path)
        except ValidationError as e:
            raise TransportError(str(e), path=path, operation=operation) from e
        return f"/{resource}" if resource else ""

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        timeout: float,
        payload: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        if self._http is None:
            raise TransportError("Not connected", path=path, operation=operation)

        url = self._url(path, operation)
        logger.debug(f"{method} {url or ROOT}")
        try:
            resp = await self._http.request(
                method,
                url,
                json=payload,
                timeout=httpx.Timeout(timeout),
            )
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Timed out after {timeout}s: {e}", path=path, operation=operation
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(
                f"{method} failed: {e}", path=path, operation=operation
            ) from e
        return resp

    async def read(self, path: str, timeout: float = DEFAULT_READ_TIMEOUT) -> dict[str, Any]:
        resp = await self._request("GET", path, "read", timeout)
        if resp.status_code == 404:
            return {}
        if resp.is_error:
            raise TransportError(
                f"GET -> {resp.status_code} {resp.text}", path=path, operation="read"
            )
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(
                f"Invalid JSON in response: {e}", path=path, operation="read"
            ) from e

    async def write(
        self,
        path: str,
        operation: Operation,
        payload: Optional[dict[str, Any]],
        timeout: float,
    ) -> None:
        method = _METHODS[operation]
        body = None if operation == Operation.DELETE else payload
        resp = await self._request(method, path, operation.value, timeout, body)
        if resp.is_error:
            raise TransportError(
                f"{method} -> {resp.status_code} {resp.text}",
                path=path,
                operation=operation.value,
            )
        logger.info(f"Applied {operation.value} {path}")
