"""
Web3name and DID resolution.

Resolves a human-readable web3name to its DID, then the DID to its
current document. Nothing is cached: every request resolves from the
ledger so that deleted DIDs are never served from stale state.
"""

import logging

from app.profiles.exceptions import DeactivatedError, NotFoundError, UpstreamError
from app.profiles.ledger import LedgerClient
from app.profiles.models import IdentityDocument

log = logging.getLogger(__name__)


class IdentityResolver:
    """Resolves web3names and DIDs through the ledger client."""

    def __init__(self, ledger: LedgerClient):
        self._ledger = ledger

    async def resolve_did(self, name: str) -> str:
        """Return the DID bound to a web3name.

        Raises:
            NotFoundError: No DID is bound to the name.
            UpstreamError: The ledger call failed.
        """
        try:
            did = await self._ledger.query_did_for_name(name)
        except UpstreamError:
            raise
        except Exception as e:
            raise UpstreamError(f"web3name lookup failed for {name}: {e}")

        if not did:
            raise NotFoundError(f"No DID found for the provided web3name: {name}")

        log.info(f"web3name_resolved name={name} did={did}")
        return did

    async def resolve_document(self, did: str) -> IdentityDocument:
        """Resolve a DID to its live document.

        Raises:
            NotFoundError: The DID was never registered.
            DeactivatedError: The DID exists but was deleted/deactivated.
            UpstreamError: The ledger call failed.
        """
        try:
            resolution = await self._ledger.resolve_document(did)
        except UpstreamError:
            raise
        except Exception as e:
            raise UpstreamError(f"DID resolution failed for {did}: {e}")

        if resolution is None:
            raise NotFoundError(f"The DID {did} does not exist on the ledger")

        if resolution.document is None or resolution.deactivated:
            raise DeactivatedError(f"The DID {did} has already been deleted")

        log.info(
            f"did_resolved did={did} services={len(resolution.document.service_endpoints)}"
        )
        return resolution.document
