"""Shared fixtures: in-memory ledger, credential builders and registry."""

import itertools
from typing import Dict, List, Optional, Set

import pytest

from app.profiles.exceptions import UpstreamError
from app.profiles.ledger import LedgerClient
from app.profiles.models import (
    PUBLISHED_CREDENTIAL_COLLECTION_TYPE,
    AuthenticityResult,
    DidResolution,
    IdentityDocument,
    PublishedCredential,
    SchemaMetadata,
    ServiceEndpoint,
)
from app.profiles.schema_registry import BUNDLED_PLATFORMS, SchemaRegistry

SUBJECT_DID = "did:kilt:4pqDzaWi3w7TzYzGnQDyrasK6UnyNnW6JQvWRrq6r8HzNNGy"
OTHER_DID = "did:kilt:4rrVTLAXgeoE8jo8si571HnqHtd5WmvLuzfH6e1xBsVXsRo7"
TRUSTED_ATTESTER = "did:kilt:4pnfkRn5UurBJTW92d9TaVLR2CqJdY4z5HPjrEbpGyBykare"
UNTRUSTED_ATTESTER = "did:kilt:4qVMYK8MKhHNTQxH5vj9rqv9kEJqqUMY3YuGe7wB9PVaMdKh"
ENDPOINT_URI = "https://storage.example.com/credentials/buitrago.json"

EMAIL_SCHEMA = BUNDLED_PLATFORMS[0].schema_id
TWITTER_SCHEMA = BUNDLED_PLATFORMS[1].schema_id
GITHUB_SCHEMA = BUNDLED_PLATFORMS[2].schema_id
UNKNOWN_SCHEMA = "0x" + "ab" * 32

_root_hashes = itertools.count(1)


def make_raw_entry(
    schema_id: str,
    contents: dict,
    owner: str = SUBJECT_DID,
    root_hash: Optional[str] = None,
) -> dict:
    """Build a collection entry as published by a holder."""
    root_hash = root_hash or "0x" + format(next(_root_hashes), "064x")
    return {
        "credential": {
            "claim": {"cTypeHash": schema_id, "contents": contents, "owner": owner},
            "rootHash": root_hash,
            "claimHashes": ["0x" + "11" * 32],
            "claimNonceMap": {"0x" + "22" * 32: "nonce"},
            "legitimations": [],
            "delegationId": None,
        },
        "metadata": {"label": "SocialKYC"},
    }


def make_credential(
    schema_id: str,
    contents: dict,
    owner: str = SUBJECT_DID,
    root_hash: Optional[str] = None,
) -> PublishedCredential:
    raw = make_raw_entry(schema_id, contents, owner, root_hash)["credential"]
    return PublishedCredential(
        subject=owner,
        schema_id=schema_id,
        contents=contents,
        root_hash=raw["rootHash"],
        claim_hashes=tuple(raw["claimHashes"]),
        raw=raw,
    )


def make_document(
    did: str = SUBJECT_DID,
    endpoint_count: int = 1,
    uris=(ENDPOINT_URI,),
) -> IdentityDocument:
    endpoints = [
        ServiceEndpoint(
            id=f"#credentials-{i}",
            types=(PUBLISHED_CREDENTIAL_COLLECTION_TYPE,),
            uris=tuple(uris),
        )
        for i in range(endpoint_count)
    ]
    endpoints.append(
        ServiceEndpoint(id="#website", types=("LinkedDomains",), uris=("https://example.com",))
    )
    return IdentityDocument(uri=did, service_endpoints=tuple(endpoints))


class FakeLedger(LedgerClient):
    """In-memory ledger with configurable bindings and attestation verdicts."""

    def __init__(self):
        self.names: Dict[str, str] = {}
        self.documents: Dict[str, Optional[DidResolution]] = {}
        self.schemas: Set[str] = {EMAIL_SCHEMA, TWITTER_SCHEMA, GITHUB_SCHEMA}
        self.attesters: Dict[str, str] = {}
        self.revoked: Set[str] = set()
        self.forged: Set[str] = set()
        self.failing: Set[str] = set()
        self.checked: List[str] = []
        self.connected_to: Optional[str] = None

    async def connect(self, address: str) -> None:
        self.connected_to = address

    async def disconnect(self) -> None:
        self.connected_to = None

    async def query_did_for_name(self, name: str) -> Optional[str]:
        return self.names.get(name)

    async def resolve_document(self, did: str) -> Optional[DidResolution]:
        return self.documents.get(did)

    async def fetch_schema(self, schema_id: str) -> Optional[SchemaMetadata]:
        if schema_id not in self.schemas:
            return None
        return SchemaMetadata(schema_id=schema_id, title="SocialKYC")

    async def check_authenticity(self, credential, schema) -> AuthenticityResult:
        self.checked.append(credential.root_hash)
        if credential.root_hash in self.failing:
            raise UpstreamError("attestation lookup failed")
        return AuthenticityResult(
            verified=credential.root_hash not in self.forged,
            revoked=credential.root_hash in self.revoked,
            attester=self.attesters.get(credential.root_hash, TRUSTED_ATTESTER),
        )


@pytest.fixture
def registry() -> SchemaRegistry:
    return SchemaRegistry(BUNDLED_PLATFORMS)


@pytest.fixture
def ledger() -> FakeLedger:
    """Ledger where web3name 'buitrago' resolves to SUBJECT_DID."""
    fake = FakeLedger()
    fake.names["buitrago"] = SUBJECT_DID
    fake.documents[SUBJECT_DID] = DidResolution(document=make_document())
    return fake
