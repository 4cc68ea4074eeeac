"""Platform Schema Registry.

Maps each supported platform to the KILT CType (credential schema) that
attests it, the claim field that carries the username, and the template
used to render the canonical profile link.

The registry is loaded once at startup and is read-only afterwards.
Duplicate schema ids or platform names are rejected at load time.

Bundled descriptors are the SocialKYC attestation CTypes. Deployments can
replace the table with a JSON file (PLATFORMS_FILE) of the form:

    [
        {"platform": "twitter",
         "schema_id": "0x47d0...",
         "contents_key": "Twitter",
         "link_template": "https://twitter.com/{username}"}
    ]
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from app.profiles.exceptions import RegistryConfigurationError

log = logging.getLogger(__name__)

# Placeholder substituted with the claim value when rendering links
USERNAME_PLACEHOLDER = "{username}"


@dataclass(frozen=True)
class SchemaDescriptor:
    """Immutable description of one supported platform.

    Attributes:
        platform: Link-kind name used as the profile key (lower case).
        schema_id: CType hash classifying the credential.
        contents_key: Claim field holding the platform username.
        link_template: Link template containing USERNAME_PLACEHOLDER.
    """

    platform: str
    schema_id: str
    contents_key: str
    link_template: str

    def render_link(self, value: Any) -> str:
        return self.link_template.replace(USERNAME_PLACEHOLDER, str(value))


# SocialKYC CTypes
BUNDLED_PLATFORMS: Tuple[SchemaDescriptor, ...] = (
    SchemaDescriptor(
        platform="email",
        schema_id="0x3291bb126e33b4862d421bfaa1d2f272e6cdfc4f96658988fbcffea8914bd9ac",
        contents_key="Email",
        link_template=USERNAME_PLACEHOLDER,
    ),
    SchemaDescriptor(
        platform="twitter",
        schema_id="0x47d04c42bdf7fdd3fc5a194bcaa367b2f4766a6b16ae3df628927656d818f420",
        contents_key="Twitter",
        link_template="https://twitter.com/" + USERNAME_PLACEHOLDER,
    ),
    SchemaDescriptor(
        platform="github",
        schema_id="0xad52bd7a8bd8a52e03181a99d2743e00d0a5e96fdc0182626655fcf0c0a776d0",
        contents_key="Github",
        link_template="https://github.com/" + USERNAME_PLACEHOLDER,
    ),
)


class SchemaRegistry:
    """Read-only lookup of platform descriptors by schema id or platform name."""

    def __init__(self, descriptors: Iterable[SchemaDescriptor]):
        by_schema: Dict[str, SchemaDescriptor] = {}
        by_platform: Dict[str, SchemaDescriptor] = {}
        ordered = []

        for descriptor in descriptors:
            platform = descriptor.platform.lower()
            if descriptor.schema_id in by_schema:
                raise RegistryConfigurationError(
                    f"Duplicate schema id in platform registry: {descriptor.schema_id}"
                )
            if platform in by_platform:
                raise RegistryConfigurationError(
                    f"Duplicate platform name in platform registry: {platform}"
                )
            by_schema[descriptor.schema_id] = descriptor
            by_platform[platform] = descriptor
            ordered.append(descriptor)

        self._by_schema = by_schema
        self._by_platform = by_platform
        self._descriptors = tuple(ordered)

    def find_by_schema_id(self, schema_id: str) -> Optional[SchemaDescriptor]:
        return self._by_schema.get(schema_id)

    def find_by_platform_name(self, name: str) -> Optional[SchemaDescriptor]:
        """Look up a descriptor by platform name (case-insensitive)."""
        if not name:
            return None
        return self._by_platform.get(name.strip().lower())

    def all(self) -> Tuple[SchemaDescriptor, ...]:
        return self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, schema_id: object) -> bool:
        return schema_id in self._by_schema


def _descriptor_from_dict(data: Any, index: int) -> SchemaDescriptor:
    """Build a descriptor from one entry of a platforms file."""
    if not isinstance(data, dict):
        raise RegistryConfigurationError(
            f"Platform entry {index} must be object, got {type(data).__name__}"
        )

    values = {}
    for key in ("platform", "schema_id", "contents_key", "link_template"):
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            raise RegistryConfigurationError(
                f"Platform entry {index} has missing or empty '{key}'"
            )
        values[key] = value.strip()

    if USERNAME_PLACEHOLDER not in values["link_template"]:
        raise RegistryConfigurationError(
            f"Platform entry {index} link_template lacks {USERNAME_PLACEHOLDER}"
        )

    values["platform"] = values["platform"].lower()
    return SchemaDescriptor(**values)


def load_descriptors_file(path: str) -> Tuple[SchemaDescriptor, ...]:
    """Load platform descriptors from a JSON file.

    Raises:
        RegistryConfigurationError: If the file is unreadable or malformed.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise RegistryConfigurationError(f"Cannot load platforms file {path}: {e}")

    if not isinstance(data, list):
        raise RegistryConfigurationError(
            f"Platforms file must contain a list, got {type(data).__name__}"
        )
    return tuple(_descriptor_from_dict(entry, i) for i, entry in enumerate(data))


def load_schema_registry(
    supported_platforms: Sequence[str] = (),
    platforms_file: Optional[str] = None,
) -> SchemaRegistry:
    """Build the registry from the bundled table or a platforms file.

    Args:
        supported_platforms: Names to enable. Empty enables every descriptor.
        platforms_file: Optional JSON file replacing BUNDLED_PLATFORMS.

    Returns:
        Validated SchemaRegistry.

    Raises:
        RegistryConfigurationError: On duplicates, unknown platform names,
            or an empty resulting registry.
    """
    descriptors = (
        load_descriptors_file(platforms_file) if platforms_file else BUNDLED_PLATFORMS
    )
    # Validate the full table before filtering
    full = SchemaRegistry(descriptors)

    if supported_platforms:
        selected = []
        for name in supported_platforms:
            descriptor = full.find_by_platform_name(name)
            if descriptor is None:
                raise RegistryConfigurationError(
                    f"Supported platform '{name}' has no schema descriptor"
                )
            if descriptor not in selected:
                selected.append(descriptor)
        registry = SchemaRegistry(selected)
    else:
        registry = full

    if not len(registry):
        raise RegistryConfigurationError("No supported platform list found")

    log.info(
        f"schema_registry_loaded platforms={[d.platform for d in registry.all()]} "
        f"source={platforms_file or 'bundled'}"
    )
    return registry
