"""Content-MD5 digests for upload verification."""
import base64
import binascii
import hashlib
import hmac

from .exceptions import IntegrityError, ValidationError


def compute_checksum(data: bytes) -> str:
    """Return the base64 encoded MD5 digest of data (Content-MD5 form)."""
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


def validate_checksum(checksum: str) -> str:
    """Ensure checksum is a well-formed base64 MD5 digest.

    Raises:
        ValidationError: If it does not decode to 16 bytes
    """
    try:
        raw = base64.b64decode(checksum, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise ValidationError(f"Checksum is not valid base64: {checksum!r}") from e
    if len(raw) != hashlib.md5().digest_size:
        raise ValidationError(f"Checksum is not an MD5 digest: {checksum!r}")
    return checksum


class ChecksumAccumulator:
    """Incremental MD5 over data fed in order."""

    def __init__(self):
        self._hasher = hashlib.md5()
        self.size = 0

    def update(self, data: bytes) -> None:
        self._hasher.update(data)
        self.size += len(data)

    def base64digest(self) -> str:
        return base64.b64encode(self._hasher.digest()).decode("ascii")

    def verify(self, expected: str, key: str) -> None:
        """Raise IntegrityError when the accumulated digest differs from expected."""
        actual = self.base64digest()
        if not hmac.compare_digest(actual, expected):
            raise IntegrityError(
                f"Checksum mismatch for {key}: expected {expected}, computed {actual}"
            )
