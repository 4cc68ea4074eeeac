"""Published credential collection parsing.

A KiltPublishedCredentialCollectionV1 is a non-empty JSON list of entries:

    {
        "credential": {
            "claim": {"cTypeHash": "0x...", "contents": {...}, "owner": "did:kilt:..."},
            "rootHash": "0x...",
            "claimHashes": ["0x...", ...],
            "claimNonceMap": {...},
            "legitimations": [],
            "delegationId": null
        },
        "metadata": {"label": "...", "blockNumber": 123, "txHash": "0x..."}
    }

Every entry must carry a schema id (cTypeHash), a claim mapping
(contents), a subject (owner) and proof material (rootHash, claimHashes).
A single malformed entry rejects the whole collection.
"""

import json
from typing import Any, List

from app.profiles.exceptions import MalformedDataError
from app.profiles.models import PublishedCredential


def parse_credential(entry: Any, index: int = 0) -> PublishedCredential:
    """Parse one collection entry.

    Args:
        entry: Collection element parsed from JSON.
        index: Position in the collection (for error messages).

    Returns:
        PublishedCredential with extracted fields.

    Raises:
        MalformedDataError: If required fields are missing or mistyped.
    """
    if not isinstance(entry, dict):
        raise MalformedDataError(
            f"Entry {index} must be object, got {type(entry).__name__}"
        )

    credential = entry.get("credential")
    if not isinstance(credential, dict):
        raise MalformedDataError(f"Entry {index} has no 'credential' object")

    claim = credential.get("claim")
    if not isinstance(claim, dict):
        raise MalformedDataError(f"Entry {index} credential has no 'claim' object")

    schema_id = claim.get("cTypeHash")
    if not isinstance(schema_id, str) or not schema_id:
        raise MalformedDataError(f"Entry {index} claim has no 'cTypeHash'")

    contents = claim.get("contents")
    if not isinstance(contents, dict):
        raise MalformedDataError(f"Entry {index} claim 'contents' must be object")

    owner = claim.get("owner")
    if not isinstance(owner, str) or not owner:
        raise MalformedDataError(f"Entry {index} claim has no 'owner'")

    root_hash = credential.get("rootHash")
    if not isinstance(root_hash, str) or not root_hash:
        raise MalformedDataError(f"Entry {index} credential has no 'rootHash'")

    claim_hashes = credential.get("claimHashes")
    if not isinstance(claim_hashes, list) or not all(
        isinstance(h, str) for h in claim_hashes
    ):
        raise MalformedDataError(
            f"Entry {index} credential 'claimHashes' must be a list of strings"
        )

    return PublishedCredential(
        subject=owner,
        schema_id=schema_id,
        contents=dict(contents),
        root_hash=root_hash,
        claim_hashes=tuple(claim_hashes),
        raw=credential,
    )


def parse_collection(data: Any) -> List[PublishedCredential]:
    """Validate a decoded collection and return typed credentials.

    Raises:
        MalformedDataError: If data is not a non-empty list of well-formed entries.
    """
    if not isinstance(data, list):
        raise MalformedDataError(
            f"Collection must be a list, got {type(data).__name__}"
        )
    if not data:
        raise MalformedDataError("Collection is empty")

    return [parse_credential(entry, i) for i, entry in enumerate(data)]


def parse_collection_bytes(content: bytes) -> List[PublishedCredential]:
    """Decode JSON bytes and parse the collection.

    Raises:
        MalformedDataError: On invalid JSON or collection shape.
    """
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedDataError(f"Collection is not valid JSON: {e}")
    except RecursionError:
        raise MalformedDataError("Collection is nested too deeply")
    return parse_collection(data)
