"""Tests for web3name and DID resolution."""

import pytest

from app.profiles.exceptions import DeactivatedError, NotFoundError, UpstreamError
from app.profiles.identity import IdentityResolver
from app.profiles.models import DidResolution

from .conftest import SUBJECT_DID, make_document


class TestResolveDid:

    @pytest.mark.asyncio
    async def test_bound_name(self, ledger):
        assert await IdentityResolver(ledger).resolve_did("buitrago") == SUBJECT_DID

    @pytest.mark.asyncio
    async def test_unbound_name(self, ledger):
        with pytest.raises(NotFoundError, match="No DID found for the provided web3name: nobody"):
            await IdentityResolver(ledger).resolve_did("nobody")

    @pytest.mark.asyncio
    async def test_upstream_error_propagates(self, ledger):
        async def broken(name):
            raise UpstreamError("gateway unavailable")

        ledger.query_did_for_name = broken
        with pytest.raises(UpstreamError, match="gateway unavailable"):
            await IdentityResolver(ledger).resolve_did("buitrago")

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_upstream_error(self, ledger):
        async def broken(name):
            raise RuntimeError("socket closed")

        ledger.query_did_for_name = broken
        with pytest.raises(UpstreamError, match="socket closed"):
            await IdentityResolver(ledger).resolve_did("buitrago")


class TestResolveDocument:

    @pytest.mark.asyncio
    async def test_live_document(self, ledger):
        document = await IdentityResolver(ledger).resolve_document(SUBJECT_DID)
        assert document == make_document()

    @pytest.mark.asyncio
    async def test_unknown_did(self, ledger):
        with pytest.raises(NotFoundError):
            await IdentityResolver(ledger).resolve_document("did:kilt:unknown")

    @pytest.mark.asyncio
    async def test_deleted_did(self, ledger):
        ledger.documents[SUBJECT_DID] = DidResolution(document=None, deactivated=True)
        with pytest.raises(DeactivatedError, match="already been deleted"):
            await IdentityResolver(ledger).resolve_document(SUBJECT_DID)

    @pytest.mark.asyncio
    async def test_deactivated_flag_with_document(self, ledger):
        ledger.documents[SUBJECT_DID] = DidResolution(
            document=make_document(), deactivated=True
        )
        with pytest.raises(DeactivatedError):
            await IdentityResolver(ledger).resolve_document(SUBJECT_DID)
