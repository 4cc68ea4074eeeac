"""Profile verification orchestration.

Wires together identity resolution, collection fetch and credential
verification, and projects the surviving credentials into a Profile.

Steps (any failure before VerifyCollection is fatal to the request):
    ValidateInput -> ResolveIdentity -> ResolveDocument -> LocateEndpoint
    -> FetchCredentials -> VerifyPrimaryMatch -> VerifyCollection
    -> ProjectProfile

VerifyCollection is best-effort: every supported credential is verified
concurrently and a failing credential is only dropped from the profile.
"""

import asyncio
import logging
from typing import AbstractSet, Any, Dict, Iterable, List, Optional, Sequence

from app.core.config import TRUSTED_ATTESTER_URIS, USERNAME_MATCH_CASE_SENSITIVE

from .credentials import CredentialFetcher, CredentialVerifier, first_endpoint_uri
from .exceptions import (
    ConfigurationError,
    InvalidRequestError,
    NoMatchError,
    ProfileError,
)
from .identity import IdentityResolver
from .ledger import LedgerClient
from .models import Profile, PublishedCredential, VerifiedCredential
from .schema_registry import SchemaDescriptor, SchemaRegistry

log = logging.getLogger(__name__)


# =============================================================================
# Matching and projection
# =============================================================================


def username_matches(claimed: Any, username: str, case_sensitive: bool = False) -> bool:
    """Compare a claim value with the requested username.

    Only string claim values can match. Case-insensitive comparison uses
    str.casefold on both sides.
    """
    if not isinstance(claimed, str):
        return False
    if case_sensitive:
        return claimed == username
    return claimed.casefold() == username.casefold()


def find_primary_credential(
    credentials: Sequence[PublishedCredential],
    descriptor: SchemaDescriptor,
    username: str,
    case_sensitive: bool = False,
) -> Optional[PublishedCredential]:
    """First credential of the platform's schema whose claim holds username.

    The claim field is the descriptor's contents_key, never derived from
    the platform name.
    """
    for credential in credentials:
        if credential.schema_id != descriptor.schema_id:
            continue
        if username_matches(
            credential.contents.get(descriptor.contents_key), username, case_sensitive
        ):
            return credential
    return None


def select_supported(
    credentials: Iterable[PublishedCredential],
    registry: SchemaRegistry,
) -> List[PublishedCredential]:
    """Credentials whose schema belongs to any supported platform."""
    return [c for c in credentials if c.schema_id in registry]


def project_profile(
    verified: Iterable[VerifiedCredential],
    primary: Optional[VerifiedCredential] = None,
) -> Profile:
    """Render one link per platform from verified credentials.

    Credentials are applied in order; a later credential for the same
    platform replaces an earlier one. The primary credential is applied
    last, so its platform always shows the username the caller proved.
    Credentials without a value for their descriptor's contents_key are
    skipped.
    """
    ordered = [item for item in verified if item is not primary]
    if primary is not None:
        ordered.append(primary)

    links: Dict[str, str] = {}
    for item in ordered:
        descriptor = item.descriptor
        value = item.credential.contents.get(descriptor.contents_key)
        if value is None or value == "":
            log.warning(
                f"credential_missing_contents root_hash={item.credential.root_hash} "
                f"key={descriptor.contents_key}"
            )
            continue
        links[descriptor.platform] = descriptor.render_link(value)
    return Profile(links=links)


# =============================================================================
# Orchestrator
# =============================================================================


class ProfileVerifier:
    """Verifies a claimed platform username for a web3name.

    Holds only read-only collaborators; a single instance serves every
    request concurrently.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        registry: SchemaRegistry,
        trusted_attesters: AbstractSet[str] = TRUSTED_ATTESTER_URIS,
        fetcher: Optional[CredentialFetcher] = None,
        case_sensitive: bool = USERNAME_MATCH_CASE_SENSITIVE,
    ):
        self.registry = registry
        self.trusted_attesters = frozenset(trusted_attesters)
        self.case_sensitive = case_sensitive
        self.identity = IdentityResolver(ledger)
        self.fetcher = fetcher or CredentialFetcher()
        self.verifier = CredentialVerifier(ledger, registry)

    def _validate_input(self, web3_name: str, username: str, platform: str) -> SchemaDescriptor:
        if not (web3_name or "").strip() or not (username or "").strip() or not (platform or "").strip():
            raise InvalidRequestError(
                "Invalid parameters: web3Name, username, and platform are required."
            )
        if not self.trusted_attesters:
            raise ConfigurationError("No trusted attester URIs found")

        descriptor = self.registry.find_by_platform_name(platform)
        if descriptor is None:
            raise InvalidRequestError(
                f"The provided platform ({platform}) is not supported."
            )
        return descriptor

    async def verify_profile(self, web3_name: str, username: str, platform: str) -> Profile:
        """Verify a claimed username and return the cross-referenced profile.

        Args:
            web3_name: Human-readable name of the identity.
            username: Claimed platform username.
            platform: Platform name (case-insensitive).

        Returns:
            Profile with one link per platform that yielded a verified credential.

        Raises:
            ProfileError: Any fatal step failure (see exceptions module).
        """
        descriptor = self._validate_input(web3_name, username, platform)
        web3_name = web3_name.strip()
        username = username.strip()

        did = await self.identity.resolve_did(web3_name)
        document = await self.identity.resolve_document(did)

        endpoints = self.fetcher.locate_endpoints(document)
        credentials = await self.fetcher.fetch(first_endpoint_uri(endpoints))

        primary = find_primary_credential(
            credentials, descriptor, username, self.case_sensitive
        )
        if primary is None:
            raise NoMatchError(
                f"No matching credential found for {descriptor.platform} "
                f"platform and username {username}"
            )

        # Primary claim must hold; its failure fails the request
        primary_verified = await self.verifier.verify(
            primary, self.trusted_attesters, did
        )
        log.info(
            f"primary_credential_verified web3_name={web3_name} "
            f"platform={descriptor.platform} attester={primary_verified.attester}"
        )

        verified = await self.verify_collection(
            select_supported(credentials, self.registry),
            did,
            known={primary: primary_verified},
        )

        profile = project_profile(verified, primary=primary_verified)
        log.info(
            f"profile_verified web3_name={web3_name} did={did} "
            f"links={sorted(profile.links)}"
        )
        return profile

    async def verify_collection(
        self,
        credentials: Sequence[PublishedCredential],
        subject_did: str,
        known: Optional[Dict[PublishedCredential, VerifiedCredential]] = None,
    ) -> List[VerifiedCredential]:
        """Verify credentials concurrently, keeping only the successes.

        Every verification runs to completion; one failure never cancels
        or blocks the others. Results keep collection order.

        Args:
            credentials: Supported credentials to verify.
            subject_did: DID the credentials must be bound to.
            known: Credentials already verified in this request.

        Returns:
            Verified credentials in collection order.
        """
        known = known or {}

        async def verify_one(credential: PublishedCredential) -> VerifiedCredential:
            if credential in known and known[credential].credential is credential:
                return known[credential]
            return await self.verifier.verify(
                credential, self.trusted_attesters, subject_did
            )

        results = await asyncio.gather(
            *(verify_one(c) for c in credentials), return_exceptions=True
        )

        verified: List[VerifiedCredential] = []
        for credential, result in zip(credentials, results):
            if isinstance(result, VerifiedCredential):
                verified.append(result)
            elif isinstance(result, ProfileError):
                log.warning(
                    f"credential_dropped root_hash={credential.root_hash} "
                    f"code={result.code}: {result.message}"
                )
            elif isinstance(result, Exception):
                log.warning(
                    f"credential_dropped root_hash={credential.root_hash} "
                    f"unexpected {type(result).__name__}: {result}",
                    exc_info=result,
                )
            else:
                # CancelledError and other BaseExceptions propagate
                raise result

        log.info(
            f"collection_verified subject={subject_did} "
            f"checked={len(credentials)} verified={len(verified)}"
        )
        return verified
