"""Single-credential verification.

Checks, in order, stopping at the first failure:
1. Schema is known to the ledger and to the platform registry
2. Attestation is authentic and not revoked (ledger oracle)
3. Attester is on the trusted allow-list (exact match)
4. Claim owner is the resolved DID (prevents replay against another identity)

Verification is a pure function of its inputs plus the ledger oracle.
"""

import logging
from typing import AbstractSet

from app.profiles.exceptions import (
    InvalidSignatureError,
    RevokedError,
    SubjectMismatchError,
    UnsupportedSchemaError,
    UntrustedIssuerError,
)
from app.profiles.ledger import LedgerClient
from app.profiles.models import PublishedCredential, VerifiedCredential
from app.profiles.schema_registry import SchemaRegistry

log = logging.getLogger(__name__)


class CredentialVerifier:
    """Verifies published credentials against the ledger and trust policy."""

    def __init__(self, ledger: LedgerClient, registry: SchemaRegistry):
        self._ledger = ledger
        self._registry = registry

    async def verify(
        self,
        credential: PublishedCredential,
        trusted_attesters: AbstractSet[str],
        subject_did: str,
    ) -> VerifiedCredential:
        """Verify one credential.

        Args:
            credential: Envelope from the fetched collection.
            trusted_attesters: Allow-list of attester DIDs.
            subject_did: DID the web3name resolved to.

        Returns:
            VerifiedCredential for the envelope.

        Raises:
            UnsupportedSchemaError: Schema unknown to the ledger or registry.
            RevokedError: Attestation revoked.
            InvalidSignatureError: Attestation not authentic.
            UntrustedIssuerError: Attester not on the allow-list.
            SubjectMismatchError: Claim owner is not subject_did.
            UpstreamError: Ledger call failed.
        """
        descriptor = self._registry.find_by_schema_id(credential.schema_id)
        schema = None
        if descriptor is not None:
            schema = await self._ledger.fetch_schema(credential.schema_id)
        if schema is None:
            raise UnsupportedSchemaError(
                f"Credential {credential.root_hash} uses unsupported schema "
                f"{credential.schema_id}"
            )

        result = await self._ledger.check_authenticity(credential, schema)
        if result.revoked:
            raise RevokedError(
                f"Credential {credential.root_hash} has been revoked, hence it is not valid"
            )
        if not result.verified:
            raise InvalidSignatureError(
                f"Credential {credential.root_hash} failed the authenticity check"
            )

        if result.attester not in trusted_attesters:
            raise UntrustedIssuerError(
                f"Credential was issued by {result.attester} which is not in the "
                f"list of trusted attesters"
            )

        if not self._ledger.same_subject(credential.subject, subject_did):
            raise SubjectMismatchError(
                f"Credential refers to {credential.subject}, expected {subject_did}"
            )

        log.debug(
            f"credential_verified root_hash={credential.root_hash} "
            f"platform={descriptor.platform} attester={result.attester}"
        )
        return VerifiedCredential(
            credential=credential,
            descriptor=descriptor,
            attester=result.attester,
        )
