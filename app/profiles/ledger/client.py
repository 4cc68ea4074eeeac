"""
Ledger client for web3name lookup, DID resolution and attestation checks.

LedgerClient is the interface the verification workflow consumes.
HttpLedgerClient implements it against a ledger gateway over HTTP, so the
service needs no chain SDK:

- GET  /web3names/{name}     -> {"did": "did:kilt:..."}             (404: unbound)
- GET  /dids/{did}           -> {"document": {...} | null,
                                 "metadata": {"deactivated": bool}}  (404: unknown)
- GET  /ctypes/{hash}        -> CType JSON                          (404: unknown)
- POST /credentials/verify   -> {"verified": bool, "revoked": bool,
                                 "attester": "did:kilt:..."}

The client is connected once at process start and disconnected once at
shutdown; the connected handle is passed to the workflow explicitly.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from app.profiles.exceptions import ConfigurationError, UpstreamError
from app.profiles.models import (
    AuthenticityResult,
    DidResolution,
    IdentityDocument,
    PublishedCredential,
    SchemaMetadata,
    ServiceEndpoint,
)

log = logging.getLogger(__name__)

KILT_DID_PREFIX = "did:kilt:"
KILT_LIGHT_DID_PREFIX = "did:kilt:light:"


# =============================================================================
# Subject comparison
# =============================================================================


def normalize_subject(did: str) -> str:
    """Reduce a DID or DID URL to the identifier that names its subject.

    - Fragments, queries and paths are dropped (did:kilt:4abc#key-1 -> did:kilt:4abc)
    - KILT light DIDs are reduced to the full DID of the same account:
      did:kilt:light:00<address>[:<details>] -> did:kilt:<address>
    """
    if not did:
        return ""
    base = did.split("#", 1)[0].split("?", 1)[0]

    if base.startswith(KILT_LIGHT_DID_PREFIX):
        identifier = base[len(KILT_LIGHT_DID_PREFIX):].split(":", 1)[0]
        # Two-character key type prefix precedes the account address
        address = identifier[2:] if len(identifier) > 2 else identifier
        return f"{KILT_DID_PREFIX}{address}"

    if base.startswith(KILT_DID_PREFIX):
        return KILT_DID_PREFIX + base[len(KILT_DID_PREFIX):].split("/", 1)[0]

    return base


def is_same_subject(a: str, b: str) -> bool:
    """True if both DIDs refer to the same subject."""
    na, nb = normalize_subject(a), normalize_subject(b)
    return bool(na) and na == nb


# =============================================================================
# Interface
# =============================================================================


class LedgerClient(ABC):
    """Ledger/identity collaborator consumed by the verification workflow."""

    @abstractmethod
    async def connect(self, address: str) -> None:
        """Open the process-wide connection. Called once at startup."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection. Called once at shutdown."""

    @abstractmethod
    async def query_did_for_name(self, name: str) -> Optional[str]:
        """Return the DID bound to a web3name, or None if unbound."""

    @abstractmethod
    async def resolve_document(self, did: str) -> Optional[DidResolution]:
        """Resolve a DID. None if the DID was never registered."""

    @abstractmethod
    async def fetch_schema(self, schema_id: str) -> Optional[SchemaMetadata]:
        """Return the CType registered under schema_id, or None if unknown."""

    @abstractmethod
    async def check_authenticity(
        self,
        credential: PublishedCredential,
        schema: SchemaMetadata,
    ) -> AuthenticityResult:
        """Check the credential's attestation and revocation status."""

    def same_subject(self, a: str, b: str) -> bool:
        return is_same_subject(a, b)


# =============================================================================
# Gateway response parsing
# =============================================================================


def _as_tuple(value: Any) -> tuple:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    return (str(value),)


def parse_identity_document(data: Dict[str, Any], deactivated: bool = False) -> IdentityDocument:
    """Build an IdentityDocument from a gateway document body.

    Accepts both the KILT SDK shape (uri/service/serviceEndpoint) and the
    W3C DID Core shape (id/service/serviceEndpoint); type and
    serviceEndpoint may each be a string or a list.

    Raises:
        UpstreamError: If the body is not a DID document.
    """
    if not isinstance(data, dict):
        raise UpstreamError(f"DID document must be object, got {type(data).__name__}")

    uri = data.get("uri") or data.get("id")
    if not isinstance(uri, str) or not uri:
        raise UpstreamError("DID document has no identifier")

    services = data.get("service") or []
    if not isinstance(services, list):
        raise UpstreamError("DID document 'service' must be a list")

    endpoints = []
    for service in services:
        if not isinstance(service, dict):
            continue
        endpoints.append(
            ServiceEndpoint(
                id=str(service.get("id", "")),
                types=_as_tuple(service.get("type")),
                uris=_as_tuple(service.get("serviceEndpoint")),
            )
        )

    return IdentityDocument(
        uri=uri,
        service_endpoints=tuple(endpoints),
        deactivated=deactivated,
    )


# =============================================================================
# HTTP gateway implementation
# =============================================================================


class HttpLedgerClient(LedgerClient):
    """LedgerClient backed by a ledger gateway HTTP API."""

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize ledger client.

        Args:
            timeout: HTTP request timeout for every gateway call.
            transport: Optional httpx transport (used by tests).
        """
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.address: Optional[str] = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def connect(self, address: str) -> None:
        if not address:
            raise ConfigurationError("LEDGER_ENDPOINT is not configured")
        if self._client is not None:
            log.warning(f"ledger_already_connected address={self.address}")
            return
        self.address = address.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.address,
            timeout=self.timeout,
            transport=self._transport,
        )
        log.info(f"ledger_connected address={self.address}")

    async def disconnect(self) -> None:
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None
        log.info(f"ledger_disconnected address={self.address}")

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send a gateway request, mapping transport failures to UpstreamError."""
        if self._client is None:
            raise UpstreamError("Ledger client is not connected")
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException:
            raise UpstreamError(f"Ledger timeout after {self.timeout}s on {path}")
        except httpx.RequestError as e:
            raise UpstreamError(f"Ledger request failed on {path}: {e}")

    @staticmethod
    def _json(response: httpx.Response, path: str) -> Any:
        if not response.is_success:
            raise UpstreamError(
                f"Ledger returned HTTP {response.status_code} for {path}"
            )
        try:
            return response.json()
        except ValueError:
            raise UpstreamError(f"Ledger returned non-JSON body for {path}")

    async def query_did_for_name(self, name: str) -> Optional[str]:
        path = f"/web3names/{quote(name, safe='')}"
        response = await self._request("GET", path)
        if response.status_code == 404:
            return None
        data = self._json(response, path)
        did = data.get("did") if isinstance(data, dict) else None
        if did is not None and not isinstance(did, str):
            raise UpstreamError(f"Ledger returned invalid DID for web3name {name}")
        return did or None

    async def resolve_document(self, did: str) -> Optional[DidResolution]:
        path = f"/dids/{quote(did, safe=':')}"
        response = await self._request("GET", path)
        if response.status_code == 404:
            return None
        data = self._json(response, path)
        if not isinstance(data, dict):
            raise UpstreamError(f"Ledger returned invalid resolution for {did}")

        metadata = data.get("metadata") or {}
        deactivated = bool(metadata.get("deactivated", False))
        body = data.get("document")
        if not body:
            return DidResolution(document=None, deactivated=True)

        return DidResolution(
            document=parse_identity_document(body, deactivated=deactivated),
            deactivated=deactivated,
        )

    async def fetch_schema(self, schema_id: str) -> Optional[SchemaMetadata]:
        path = f"/ctypes/{quote(schema_id, safe='')}"
        response = await self._request("GET", path)
        if response.status_code == 404:
            return None
        data = self._json(response, path)
        if not isinstance(data, dict):
            raise UpstreamError(f"Ledger returned invalid CType for {schema_id}")

        properties = data.get("properties") or {}
        return SchemaMetadata(
            schema_id=schema_id,
            title=str(data.get("title", "")),
            properties=tuple(properties) if isinstance(properties, dict) else (),
            raw=data,
        )

    async def check_authenticity(
        self,
        credential: PublishedCredential,
        schema: SchemaMetadata,
    ) -> AuthenticityResult:
        path = "/credentials/verify"
        response = await self._request(
            "POST",
            path,
            json={"credential": credential.raw, "ctype": schema.raw},
        )
        data = self._json(response, path)
        if not isinstance(data, dict):
            raise UpstreamError("Ledger returned invalid verification result")

        attester = data.get("attester")
        return AuthenticityResult(
            verified=bool(data.get("verified", False)),
            revoked=bool(data.get("revoked", False)),
            attester=attester if isinstance(attester, str) else "",
        )
