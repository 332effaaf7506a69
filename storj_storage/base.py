"""Storage service protocol definitions."""
from datetime import timedelta
from typing import Any, AsyncIterator, BinaryIO, Callable, Optional, Protocol, Union, runtime_checkable

from .models import (
    Disposition,
    ObjectMetadata,
    PresignedRequest,
    StoredObject,
    UploadResult,
)


@runtime_checkable
class StorageService(Protocol):
    """Public contract of a storage service bound to one bucket."""

    name: str
    bucket: str
    public: bool

    async def upload(
        self,
        key: str,
        content: Union[bytes, BinaryIO],
        checksum: Optional[str] = None,
        content_type: Optional[str] = None,
        filename: Optional[str] = None,
        disposition: Union[Disposition, str, None] = None,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> UploadResult:
        """Upload content under key."""
        ...

    async def download(
        self,
        key: str,
        consumer: Optional[Callable[[bytes], Any]] = None,
    ) -> Optional[bytes]:
        """Download content, buffered or chunk by chunk."""
        ...

    def stream_download(self, key: str) -> AsyncIterator[bytes]:
        """Stream content in ordered chunks."""
        ...

    async def download_chunk(self, key: str, start: int, end: int) -> bytes:
        """Download an inclusive byte range."""
        ...

    async def delete(self, key: str) -> None:
        """Delete an object (idempotent)."""
        ...

    async def delete_prefixed(self, prefix: str) -> int:
        """Delete every object under prefix."""
        ...

    async def exists(self, key: str) -> bool:
        """Check if an object exists."""
        ...

    async def update_metadata(
        self,
        key: str,
        content_type: Optional[str] = None,
        filename: Optional[str] = None,
        disposition: Union[Disposition, str, None] = None,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> None:
        """Replace object metadata."""
        ...

    async def object(self, key: str) -> StoredObject:
        """Read object size and headers."""
        ...

    async def get_metadata(self, key: str) -> ObjectMetadata:
        """Read logical object metadata."""
        ...

    async def url(
        self,
        key: str,
        expires_in: Optional[Union[int, timedelta]] = None,
        filename: Optional[str] = None,
        disposition: Union[Disposition, str, None] = None,
        content_type: Optional[str] = None,
    ) -> str:
        """Read URL for an object."""
        ...

    async def url_for_direct_upload(
        self,
        key: str,
        expires_in: Union[int, timedelta],
        content_type: str,
        content_length: int,
        checksum: str,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> str:
        """Presigned PUT URL for client-direct upload."""
        ...

    def headers_for_direct_upload(
        self,
        key: str,
        checksum: str,
        content_type: Optional[str] = None,
        filename: Optional[str] = None,
        disposition: Union[Disposition, str, None] = None,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> dict[str, str]:
        """Headers to attach to a client-direct PUT."""
        ...

    async def presigned_upload(
        self,
        key: str,
        expires_in: Union[int, timedelta],
        content_type: str,
        content_length: int,
        checksum: str,
        filename: Optional[str] = None,
        disposition: Union[Disposition, str, None] = None,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> PresignedRequest:
        """URL plus headers for client-direct upload."""
        ...

    async def health_check(self) -> bool:
        """Check backend connectivity and bucket access."""
        ...
