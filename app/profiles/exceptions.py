"""
Profile verification exceptions.

Every exception carries an error code from ErrorCode. The transport layer
maps the code to an HTTP status via ERROR_HTTP_STATUS.
"""

from app.profiles.api_models import ErrorCode


class ProfileError(Exception):
    """Base exception for profile verification.

    Carries an error code that maps to ErrorCode constants.
    The caller is responsible for converting this to ErrorDetail.
    """

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


class InvalidRequestError(ProfileError):
    """Missing or unusable caller input (web3name, username or platform)."""

    def __init__(self, message: str = "Invalid request parameters"):
        super().__init__(ErrorCode.INVALID_REQUEST, message)


class NotFoundError(ProfileError):
    """No binding exists.

    Used when:
    - web3name has no DID
    - DID was never registered
    - Document has no credential-publication endpoint
    """

    def __init__(self, message: str = "Not found"):
        super().__init__(ErrorCode.NOT_FOUND, message)


class DeactivatedError(ProfileError):
    """DID existed but its document was deleted/deactivated. Terminal."""

    def __init__(self, message: str = "The requested DID has been deactivated"):
        super().__init__(ErrorCode.DEACTIVATED, message)


class ConflictError(ProfileError):
    """More than one credential-publication endpoint in the document."""

    def __init__(self, message: str = "Ambiguous endpoint configuration"):
        super().__init__(ErrorCode.CONFLICT, message)


class UpstreamError(ProfileError):
    """Ledger or HTTP call failed operationally.

    Used when:
    - Network timeout or connection failure
    - Non-success HTTP status
    - Too many redirects
    - Response too large
    """

    def __init__(self, message: str = "Upstream call failed"):
        super().__init__(ErrorCode.UPSTREAM_FAILED, message)


class MalformedDataError(ProfileError):
    """Fetched payload does not have the expected shape."""

    def __init__(self, message: str = "Malformed credential collection"):
        super().__init__(ErrorCode.MALFORMED_DATA, message)


class UnsupportedSchemaError(ProfileError):
    def __init__(self, message: str = "Unsupported credential schema"):
        super().__init__(ErrorCode.UNSUPPORTED_SCHEMA, message)


class RevokedError(ProfileError):
    def __init__(self, message: str = "Credential has been revoked"):
        super().__init__(ErrorCode.CREDENTIAL_REVOKED, message)


class InvalidSignatureError(ProfileError):
    def __init__(self, message: str = "Credential authenticity check failed"):
        super().__init__(ErrorCode.SIGNATURE_INVALID, message)


class UntrustedIssuerError(ProfileError):
    def __init__(self, message: str = "Credential attester is not trusted"):
        super().__init__(ErrorCode.UNTRUSTED_ISSUER, message)


class SubjectMismatchError(ProfileError):
    """Credential refers to a different subject than the resolved DID."""

    def __init__(self, message: str = "Credential refers to a different subject than expected"):
        super().__init__(ErrorCode.SUBJECT_MISMATCH, message)


class NoMatchError(ProfileError):
    """No credential in the collection satisfies the caller's claim."""

    def __init__(self, message: str = "No matching credential found"):
        super().__init__(ErrorCode.NO_MATCH, message)


class ConfigurationError(ProfileError):
    """Missing or invalid service configuration (trusted attesters, ledger)."""

    def __init__(self, message: str = "Service is not configured"):
        super().__init__(ErrorCode.CONFIGURATION_ERROR, message)


class RegistryConfigurationError(ConfigurationError):
    """Platform descriptor table is invalid. Raised at load time only."""

    def __init__(self, message: str = "Invalid platform registry"):
        super().__init__(message)
