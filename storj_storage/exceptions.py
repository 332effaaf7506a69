"""Storage service exceptions."""
from typing import NoReturn

from botocore.exceptions import (
    ClientError,
    ConnectionError as BotoConnectionError,
    EndpointConnectionError,
    ReadTimeoutError,
)


class StorageError(Exception):
    """Base storage exception."""
    pass


class NotFoundError(StorageError):
    """Object not found in storage."""
    pass


class IntegrityError(StorageError):
    """Content does not match its checksum."""
    pass


class PermissionDeniedError(StorageError):
    """Permission denied for storage operation."""
    pass


class AuthorizationExpiredError(PermissionDeniedError):
    """Presigned grant or credentials used after expiry."""
    pass


class AuthorizationViolationError(PermissionDeniedError):
    """Request deviates from the constraints it was signed with."""
    pass


class BackendUnavailableError(StorageError):
    """Transient error (network, rate limit, server error)."""
    pass


class ConfigurationError(StorageError):
    """Storage configuration error."""
    pass


class ValidationError(StorageError):
    """Storage validation error."""
    pass


class InvalidMetadataError(ValidationError):
    """Malformed content type, disposition or custom metadata."""
    pass


NOT_FOUND_CODES = {"NoSuchKey", "NoSuchUpload", "NotFound", "404"}
INTEGRITY_CODES = {"BadDigest", "InvalidDigest", "XAmzContentSHA256Mismatch"}
EXPIRED_CODES = {"ExpiredToken", "RequestExpired", "TokenRefreshRequired"}
VIOLATION_CODES = {
    "AccessDenied",
    "SignatureDoesNotMatch",
    "EntityTooLarge",
    "EntityTooSmall",
    "IncompleteBody",
    "InvalidAccessKeyId",
    "403",
}
TRANSIENT_CODES = {
    "RequestTimeout",
    "SlowDown",
    "ServiceUnavailable",
    "InternalError",
    "500",
    "502",
    "503",
    "504",
}


def error_code(e: Exception) -> str:
    """Extract the S3 error code from a botocore ClientError."""
    return str(getattr(e, "response", {}).get("Error", {}).get("Code", ""))


def translate_error(e: Exception, operation: str) -> NoReturn:
    """Map botocore exceptions to storage exceptions and raise."""
    if isinstance(e, StorageError):
        raise e

    if isinstance(e, (EndpointConnectionError, BotoConnectionError, ReadTimeoutError)):
        raise BackendUnavailableError(f"Backend unavailable: {operation}: {e}") from e

    if isinstance(e, ClientError):
        code = error_code(e)
        message = str(e.response.get("Error", {}).get("Message", ""))

        if code in NOT_FOUND_CODES:
            raise NotFoundError(f"Object not found: {operation}") from e
        if code in INTEGRITY_CODES:
            raise IntegrityError(f"Checksum mismatch: {operation}") from e
        if code in EXPIRED_CODES or (code == "AccessDenied" and "expired" in message.lower()):
            raise AuthorizationExpiredError(f"Authorization expired: {operation}") from e
        if code in VIOLATION_CODES:
            raise AuthorizationViolationError(f"Access denied: {operation}: {code}") from e
        if code in TRANSIENT_CODES:
            raise BackendUnavailableError(f"Transient error: {operation}: {e}") from e

    raise StorageError(f"Storage error during {operation}: {e}") from e
