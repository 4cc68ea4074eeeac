"""Data models for identity documents and published credentials.

Defines:
- ServiceEndpoint / IdentityDocument: resolved state of a DID
- DidResolution: raw outcome of DID resolution (document may be absent)
- SchemaMetadata: CType as returned by the ledger
- PublishedCredential: a signed claim as published by its holder
- AuthenticityResult: ledger verdict on a credential's attestation
- VerifiedCredential: a credential that passed every check
- Profile: the verified link mapping returned to callers

All models are immutable; each request builds its own instances.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from app.profiles.schema_registry import SchemaDescriptor

# Service type tag marking a credential-publication endpoint
PUBLISHED_CREDENTIAL_COLLECTION_TYPE = "KiltPublishedCredentialCollectionV1"


@dataclass(frozen=True)
class ServiceEndpoint:
    """Service entry of an identity document.

    Attributes:
        id: Service id (usually a DID URL fragment).
        types: Type tags of the service.
        uris: One or more endpoint URIs.
    """

    id: str
    types: Tuple[str, ...]
    uris: Tuple[str, ...]

    def has_type(self, service_type: str) -> bool:
        return service_type in self.types


@dataclass(frozen=True)
class IdentityDocument:
    """Resolved DID document snapshot."""

    uri: str
    service_endpoints: Tuple[ServiceEndpoint, ...] = ()
    deactivated: bool = False


@dataclass(frozen=True)
class DidResolution:
    """Outcome of resolving a DID.

    A resolution with document=None means the DID existed but was deleted.
    """

    document: Optional[IdentityDocument]
    deactivated: bool = False


@dataclass(frozen=True)
class SchemaMetadata:
    """CType (credential schema) registered on the ledger."""

    schema_id: str
    title: str = ""
    properties: Tuple[str, ...] = ()
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class PublishedCredential:
    """Published credential envelope.

    Attributes:
        subject: Claim owner DID.
        schema_id: CType hash classifying the claim.
        contents: Claim field -> value.
        root_hash: Credential root hash (anchors the on-chain attestation).
        claim_hashes: Salted claim hashes (proof material).
        raw: Parsed entry as published, passed as-is to the ledger for checks.
    """

    subject: str
    schema_id: str
    contents: Mapping[str, Any]
    root_hash: str
    claim_hashes: Tuple[str, ...] = ()
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "contents", MappingProxyType(dict(self.contents)))

    def __hash__(self) -> int:
        """Hash by root hash for use in sets/dicts."""
        return hash(self.root_hash)


@dataclass(frozen=True)
class AuthenticityResult:
    """Ledger verdict for a credential.

    Attributes:
        verified: Claim hashes and attestation are authentic.
        revoked: Attestation has been revoked.
        attester: DID of the attester that signed the attestation.
    """

    verified: bool
    revoked: bool
    attester: str


@dataclass(frozen=True)
class VerifiedCredential:
    """A published credential that passed every verification step."""

    credential: PublishedCredential
    descriptor: SchemaDescriptor
    attester: str

    @property
    def platform(self) -> str:
        return self.descriptor.platform


@dataclass(frozen=True)
class Profile:
    """Verified link mapping (platform -> rendered URL)."""

    links: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "links", MappingProxyType(dict(self.links)))

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {"links": dict(self.links)}
