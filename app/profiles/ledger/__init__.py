"""Ledger collaborator: web3name lookup, DID resolution, attestation checks."""

from .client import (
    HttpLedgerClient,
    LedgerClient,
    is_same_subject,
    normalize_subject,
    parse_identity_document,
)

__all__ = [
    "LedgerClient",
    "HttpLedgerClient",
    "is_same_subject",
    "normalize_subject",
    "parse_identity_document",
]
