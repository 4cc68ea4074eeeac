"""
Profile Verifier API models.

Request/response schemas for the /profiles endpoints and the error code
registry used by every domain exception.
"""

from typing import Dict

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# =============================================================================
# Request Models
# =============================================================================

class VerifyProfileRequest(BaseModel):
    """Request body for /profiles/verifyProfile.

    Fields default to empty so that missing parameters reach the workflow
    input check and are reported as INVALID_REQUEST.
    """

    model_config = ConfigDict(populate_by_name=True)

    web3_name: str = Field(
        default="",
        validation_alias=AliasChoices("web3Name", "web3_name"),
        description="The web3name for profile verification.",
        examples=["buitrago"],
    )
    username: str = Field(
        default="",
        description="The username for profile verification.",
        examples=["briefboards"],
    )
    platform: str = Field(
        default="",
        validation_alias=AliasChoices("platformName", "platform"),
        description="The social media platform's name for profile verification.",
        examples=["twitter"],
    )


# =============================================================================
# Response Models
# =============================================================================

class ProfileResponse(BaseModel):
    """Cross-referenced social links associated with a web3name.

    Keys are the platform names of the loaded registry. Email, Twitter and
    GitHub are bundled; other platforms come from PLATFORMS_FILE.
    """

    model_config = ConfigDict(frozen=True)

    links: Dict[str, str] = Field(
        default_factory=dict,
        examples=[{
            "email": "example@email.com",
            "twitter": "https://twitter.com/example",
            "github": "https://github.com/example",
        }],
    )


# =============================================================================
# Error Models
# =============================================================================

class ErrorDetail(BaseModel):
    """Single error surfaced for a failed request."""
    code: str
    message: str


class ErrorResponse(BaseModel):
    error: ErrorDetail


class ErrorCode:
    """Error code registry."""
    # Caller input
    INVALID_REQUEST = "INVALID_REQUEST"

    # Identity layer
    NOT_FOUND = "NOT_FOUND"
    DEACTIVATED = "DEACTIVATED"
    CONFLICT = "CONFLICT"

    # Transport/data layer
    UPSTREAM_FAILED = "UPSTREAM_FAILED"
    MALFORMED_DATA = "MALFORMED_DATA"

    # Credential layer
    UNSUPPORTED_SCHEMA = "UNSUPPORTED_SCHEMA"
    CREDENTIAL_REVOKED = "CREDENTIAL_REVOKED"
    SIGNATURE_INVALID = "SIGNATURE_INVALID"
    UNTRUSTED_ISSUER = "UNTRUSTED_ISSUER"
    SUBJECT_MISMATCH = "SUBJECT_MISMATCH"
    NO_MATCH = "NO_MATCH"

    # Verifier layer
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# HTTP status the transport layer returns for each error code
ERROR_HTTP_STATUS: Dict[str, int] = {
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.DEACTIVATED: 410,
    ErrorCode.CONFLICT: 409,
    ErrorCode.UPSTREAM_FAILED: 502,
    ErrorCode.MALFORMED_DATA: 502,
    ErrorCode.UNSUPPORTED_SCHEMA: 422,
    ErrorCode.CREDENTIAL_REVOKED: 422,
    ErrorCode.SIGNATURE_INVALID: 422,
    ErrorCode.UNTRUSTED_ISSUER: 422,
    ErrorCode.SUBJECT_MISMATCH: 422,
    ErrorCode.NO_MATCH: 404,
    ErrorCode.CONFIGURATION_ERROR: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}
