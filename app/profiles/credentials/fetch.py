"""Credential-publication endpoint discovery and collection fetch.

Fetch enforces:
- Configurable timeout
- Response size limit
- Redirect limit
- ipfs:// URIs dereferenced through the configured IPFS gateway
"""

import logging
from typing import List, Optional

import httpx

from app.core.config import (
    CREDENTIAL_FETCH_TIMEOUT_SECONDS,
    CREDENTIAL_MAX_REDIRECTS,
    CREDENTIAL_MAX_SIZE_BYTES,
    IPFS_GATEWAY_URL,
)
from app.profiles.exceptions import ConflictError, NotFoundError, UpstreamError
from app.profiles.models import (
    PUBLISHED_CREDENTIAL_COLLECTION_TYPE,
    IdentityDocument,
    PublishedCredential,
    ServiceEndpoint,
)

from .parser import parse_collection_bytes

log = logging.getLogger(__name__)

IPFS_SCHEME = "ipfs://"


def resolve_endpoint_uri(uri: str, ipfs_gateway: str = IPFS_GATEWAY_URL) -> str:
    """Map a service endpoint URI to a fetchable HTTP(S) URL.

    ipfs://<cid>[/path] becomes <gateway>/<cid>[/path]; other URIs are
    returned unchanged.
    """
    if uri.startswith(IPFS_SCHEME):
        return ipfs_gateway.rstrip("/") + "/" + uri[len(IPFS_SCHEME):].lstrip("/")
    return uri


class CredentialFetcher:
    """Locates and retrieves a DID's published credential collection."""

    def __init__(
        self,
        timeout: float = CREDENTIAL_FETCH_TIMEOUT_SECONDS,
        max_size_bytes: int = CREDENTIAL_MAX_SIZE_BYTES,
        max_redirects: int = CREDENTIAL_MAX_REDIRECTS,
        ipfs_gateway: str = IPFS_GATEWAY_URL,
    ):
        self.timeout = timeout
        self.max_size_bytes = max_size_bytes
        self.max_redirects = max_redirects
        self.ipfs_gateway = ipfs_gateway

    def locate_endpoints(self, document: IdentityDocument) -> List[ServiceEndpoint]:
        """Return the single credential-publication endpoint of a document.

        Exactly one endpoint must be present: more than one is ambiguous and
        rejected rather than guessing which is authoritative.

        Raises:
            NotFoundError: No publication endpoint, or it lists no URI.
            ConflictError: More than one publication endpoint.
        """
        endpoints = [
            service
            for service in document.service_endpoints
            if service.has_type(PUBLISHED_CREDENTIAL_COLLECTION_TYPE)
        ]
        if not endpoints:
            raise NotFoundError(
                f"No {PUBLISHED_CREDENTIAL_COLLECTION_TYPE} endpoints were found "
                f"in the document of {document.uri}"
            )
        if len(endpoints) > 1:
            raise ConflictError(
                f"Multiple {PUBLISHED_CREDENTIAL_COLLECTION_TYPE} endpoints "
                f"({len(endpoints)}) were found in the document of {document.uri}"
            )
        if not endpoints[0].uris:
            raise NotFoundError(
                f"Endpoint {endpoints[0].id} of {document.uri} lists no URI"
            )
        return endpoints

    async def fetch(self, endpoint_uri: str) -> List[PublishedCredential]:
        """Fetch and parse a published credential collection.

        Args:
            endpoint_uri: URI from the publication endpoint.

        Returns:
            Parsed, non-empty list of credentials.

        Raises:
            UpstreamError: On network/timeout/status/size errors.
            MalformedDataError: If the payload is not a valid collection.
        """
        content = await self._get(resolve_endpoint_uri(endpoint_uri, self.ipfs_gateway))
        credentials = parse_collection_bytes(content)
        log.info(f"credentials_fetched uri={endpoint_uri} count={len(credentials)}")
        return credentials

    async def _get(self, url: str) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                max_redirects=self.max_redirects,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)

                if not response.is_success:
                    raise UpstreamError(
                        f"Failed to fetch credentials for endpoint {url}. "
                        f"Status code: {response.status_code}"
                    )

                content = response.content
                if len(content) > self.max_size_bytes:
                    raise UpstreamError(
                        f"Response size {len(content)} bytes exceeds limit "
                        f"of {self.max_size_bytes} bytes"
                    )

                return content

        except UpstreamError:
            raise
        except httpx.TimeoutException:
            raise UpstreamError(f"Timeout after {self.timeout}s fetching {url}")
        except httpx.TooManyRedirects:
            raise UpstreamError(f"Exceeded {self.max_redirects} redirects fetching {url}")
        except httpx.RequestError as e:
            raise UpstreamError(f"Request failed: {e}")


def first_endpoint_uri(endpoints: List[ServiceEndpoint]) -> Optional[str]:
    """URI to fetch from a located endpoint list (first URI of the only endpoint)."""
    if not endpoints or not endpoints[0].uris:
        return None
    return endpoints[0].uris[0]
