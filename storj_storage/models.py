"""Storage data transfer objects."""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class Disposition(str, Enum):
    """HTTP content-disposition type."""
    INLINE = "inline"
    ATTACHMENT = "attachment"


class ObjectMetadata(BaseModel):
    """Logical metadata attached to a stored object."""
    content_type: Optional[str] = None
    disposition: Optional[Disposition] = None
    filename: Optional[str] = None
    custom_metadata: dict[str, str] = Field(default_factory=dict)


class StoredObject(BaseModel):
    """Object as reported by a HEAD request."""
    key: str
    size: int
    etag: Optional[str] = None
    last_modified: Optional[datetime] = None
    content_type: Optional[str] = None
    content_disposition: Optional[str] = None
    metadata: ObjectMetadata = Field(default_factory=ObjectMetadata)
    # Gateway view: system headers plus custom metadata, lowercased keys
    custom: dict[str, str] = Field(default_factory=dict)


class UploadResult(BaseModel):
    """Upload operation result."""
    key: str
    etag: Optional[str] = None
    size: int
    checksum: str
    multipart: bool = False
    parts: int = 1
    content_type: Optional[str] = None


class PresignedRequest(BaseModel):
    """Presigned request for direct access."""
    url: str
    method: str = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    expires_in: Optional[int] = None
