"""Storage configuration models."""
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator

# Backend limits of the S3 multipart protocol
MIN_PART_SIZE = 5 * 1024 * 1024  # 5MB, every part but the last
MAX_PART_SIZE = 5 * 1024 * 1024 * 1024  # 5GB
MAX_PARTS = 10_000

# Largest payload the Storj gateway hands back from a single network read
STORJ_MAX_READ_SIZE = 7408


class ServiceType(str, Enum):
    """Storage service implementations."""
    STORJ = "storj"


class StorageConfig(BaseModel):
    """Configuration of one storage service instance.

    Immutable once the service is built; a differently configured
    service is a distinct instance.
    """
    model_config = ConfigDict(frozen=True, use_enum_values=True, validate_default=True)

    service: ServiceType = ServiceType.STORJ
    bucket: str
    region: Optional[str] = None
    endpoint: Optional[str] = "https://gateway.storjshare.io"

    # Credentials
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None

    # Link sharing
    public: bool = False
    link_sharing_address: Optional[str] = "https://link.storjshare.io"
    share_access_key_id: Optional[str] = None

    # Transfer tuning
    multipart_upload_threshold: int = MIN_PART_SIZE
    multipart_part_size: int = MIN_PART_SIZE
    download_chunk_size: int = STORJ_MAX_READ_SIZE
    url_expires_in: int = 300

    # Advanced settings
    max_retry_attempts: int = 3
    timeout: int = 30
    enable_ssl: bool = True

    @field_validator("multipart_upload_threshold", "download_chunk_size", "url_expires_in")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("multipart_part_size")
    @classmethod
    def _clamp_part_size(cls, v: int) -> int:
        return min(max(v, MIN_PART_SIZE), MAX_PART_SIZE)

    @field_validator("link_sharing_address")
    @classmethod
    def _strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        return v.rstrip("/") if v else v

    @property
    def link_sharing_enabled(self) -> bool:
        """Whether url() should hand out link-sharing URLs."""
        return bool(self.link_sharing_address and self.share_access_key_id)
