"""
Profile Verifier configuration constants.

Constants are organized into:
- LEDGER: Connection settings for the ledger gateway
- TRUST: Trusted attesters and supported platforms
- POLICY: Fetch limits and matching policy
- OPERATIONAL: Deployment-specific settings (env vars)

All values are read once at import time and are immutable for the
lifetime of the process.
"""

import os
from typing import Optional

# =============================================================================
# LEDGER CONNECTION
# =============================================================================

# Base URL of the ledger gateway used for web3name lookup, DID resolution,
# CType retrieval and credential attestation checks.
# Connected once at startup, disconnected once at shutdown.
LEDGER_ENDPOINT: str = os.getenv("LEDGER_ENDPOINT", "").strip()

# Per-request timeout for ledger gateway calls
LEDGER_TIMEOUT_SECONDS: float = float(os.getenv("LEDGER_TIMEOUT_SECONDS", "30.0"))


# =============================================================================
# TRUST CONFIGURATION
# =============================================================================


def parse_csv(value: Optional[str]) -> tuple[str, ...]:
    """Split a comma-separated setting, stripping whitespace and dropping blanks.

    Order is preserved and duplicates are removed.
    """
    if not value:
        return ()
    items: list[str] = []
    for item in value.split(","):
        item = item.strip()
        if item and item not in items:
            items.append(item)
    return tuple(items)


def _parse_trusted_attesters() -> frozenset[str]:
    """Parse comma-separated trusted attester DIDs from environment.

    Environment variable format:
        TRUSTED_ATTESTER_URIS=did:kilt:4pnfkRn5UurBJTW92d9TaVLR2CqJdY4z5HPjrEbpGyBykare,did:kilt:...

    Matching against credential attesters is exact; no wildcards.

    Returns:
        frozenset of trusted attester DID strings (empty if unset).
    """
    return frozenset(parse_csv(os.getenv("TRUSTED_ATTESTER_URIS", "")))


# Allow-list of attesters whose credentials are accepted.
# An empty list is a fatal configuration error (checked at startup and
# again for every request).
TRUSTED_ATTESTER_URIS: frozenset[str] = _parse_trusted_attesters()

# Platforms enabled for verification, by name (e.g. "twitter,github").
# Empty means every platform in the descriptor table is enabled.
SUPPORTED_PLATFORMS: tuple[str, ...] = parse_csv(os.getenv("SUPPORTED_PLATFORMS", ""))

# Optional JSON file replacing the bundled platform descriptor table
PLATFORMS_FILE: Optional[str] = os.getenv("PLATFORMS_FILE") or None


# =============================================================================
# POLICY CONSTANTS
# =============================================================================

# Published credential collection fetch constraints
CREDENTIAL_FETCH_TIMEOUT_SECONDS: float = float(
    os.getenv("CREDENTIAL_FETCH_TIMEOUT_SECONDS", "30.0")
)
CREDENTIAL_MAX_SIZE_BYTES: int = int(
    os.getenv("CREDENTIAL_MAX_SIZE_BYTES", "1048576")  # 1 MB
)
CREDENTIAL_MAX_REDIRECTS: int = int(os.getenv("CREDENTIAL_MAX_REDIRECTS", "3"))

# Gateway used to dereference ipfs:// service endpoints
IPFS_GATEWAY_URL: str = os.getenv("IPFS_GATEWAY_URL", "https://ipfs.io/ipfs/")

# Username matching against the claim contents.
# False (default): case-insensitive comparison (str.casefold on both sides)
# True: exact comparison
USERNAME_MATCH_CASE_SENSITIVE: bool = os.getenv(
    "USERNAME_MATCH_CASE_SENSITIVE", "false"
).lower() == "true"


# =============================================================================
# OPERATIONAL SETTINGS (deployment-specific, via environment variables)
# =============================================================================

# Admin endpoint visibility
# Default: True for dev, set to False in production deployments
ADMIN_ENDPOINT_ENABLED: bool = os.getenv("ADMIN_ENDPOINT_ENABLED", "true").lower() == "true"
