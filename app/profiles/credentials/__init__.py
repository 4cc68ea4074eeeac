"""Published credential discovery, parsing and verification."""

from .fetch import CredentialFetcher, first_endpoint_uri, resolve_endpoint_uri
from .parser import parse_collection, parse_collection_bytes, parse_credential
from .verifier import CredentialVerifier

__all__ = [
    # Fetch
    "CredentialFetcher",
    "first_endpoint_uri",
    "resolve_endpoint_uri",
    # Parsing
    "parse_collection",
    "parse_collection_bytes",
    "parse_credential",
    # Verification
    "CredentialVerifier",
]
