"""Storj storage service reached through its S3-compatible gateway."""
from functools import partial
from typing import Any, AsyncIterator, Callable, Optional, Union

import anyio

from core.logging_config import get_logger
from ..base import StorageService
from ..config import StorageConfig
from ..exceptions import ConfigurationError
from ..models import (
    Disposition,
    ObjectMetadata,
    PresignedRequest,
    StoredObject,
    UploadResult,
)
from ..presign import ExpiresIn, PresignedURLIssuer
from ..transfer import Content, TransferEngine

logger = get_logger(__name__)


class StorjService(StorageService):
    """Storage service facade over a transfer engine and a URL issuer."""

    def __init__(
        self,
        client: Any,  # boto3 S3 client
        config: StorageConfig,
        name: str = "storj"
    ):
        """Initialize Storj service.

        Args:
            client: Boto3 S3 client pointed at the Storj gateway
            config: Storage configuration
            name: Configured service name
        """
        self.client = client
        self.config = config
        self.name = name
        self.bucket = config.bucket
        self.public = config.public
        self.transfer = TransferEngine(client, config)
        self.issuer = PresignedURLIssuer(client, config)

    def __repr__(self) -> str:
        return f"<StorjService name={self.name!r} bucket={self.bucket!r}>"

    async def upload(
        self,
        key: str,
        content: Content,
        checksum: Optional[str] = None,
        content_type: Optional[str] = None,
        filename: Optional[str] = None,
        disposition: Union[Disposition, str, None] = None,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> UploadResult:
        return await self.transfer.upload(
            key,
            content,
            checksum=checksum,
            content_type=content_type,
            filename=filename,
            disposition=disposition,
            custom_metadata=custom_metadata,
        )

    async def download(
        self,
        key: str,
        consumer: Optional[Callable[[bytes], Any]] = None,
    ) -> Optional[bytes]:
        return await self.transfer.download(key, consumer)

    def stream_download(self, key: str) -> AsyncIterator[bytes]:
        return self.transfer.stream_download(key)

    async def download_chunk(self, key: str, start: int, end: int) -> bytes:
        return await self.transfer.download_chunk(key, start, end)

    async def delete(self, key: str) -> None:
        await self.transfer.delete(key)

    async def delete_prefixed(self, prefix: str) -> int:
        return await self.transfer.delete_prefixed(prefix)

    async def exists(self, key: str) -> bool:
        return await self.transfer.exists(key)

    async def update_metadata(
        self,
        key: str,
        content_type: Optional[str] = None,
        filename: Optional[str] = None,
        disposition: Union[Disposition, str, None] = None,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> None:
        await self.transfer.update_metadata(
            key,
            content_type=content_type,
            filename=filename,
            disposition=disposition,
            custom_metadata=custom_metadata,
        )

    async def object(self, key: str) -> StoredObject:
        return await self.transfer.head(key)

    async def get_metadata(self, key: str) -> ObjectMetadata:
        return (await self.transfer.head(key)).metadata

    async def url(
        self,
        key: str,
        expires_in: Optional[ExpiresIn] = None,
        filename: Optional[str] = None,
        disposition: Union[Disposition, str, None] = None,
        content_type: Optional[str] = None,
    ) -> str:
        return await self.issuer.url(
            key,
            expires_in=expires_in,
            filename=filename,
            disposition=disposition,
            content_type=content_type,
        )

    async def url_for_direct_upload(
        self,
        key: str,
        expires_in: ExpiresIn,
        content_type: str,
        content_length: int,
        checksum: str,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> str:
        return await self.issuer.url_for_direct_upload(
            key,
            expires_in=expires_in,
            content_type=content_type,
            content_length=content_length,
            checksum=checksum,
            custom_metadata=custom_metadata,
        )

    def headers_for_direct_upload(
        self,
        key: str,
        checksum: str,
        content_type: Optional[str] = None,
        filename: Optional[str] = None,
        disposition: Union[Disposition, str, None] = None,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> dict[str, str]:
        return self.issuer.headers_for_direct_upload(
            key,
            checksum=checksum,
            content_type=content_type,
            filename=filename,
            disposition=disposition,
            custom_metadata=custom_metadata,
        )

    async def presigned_upload(
        self,
        key: str,
        expires_in: ExpiresIn,
        content_type: str,
        content_length: int,
        checksum: str,
        filename: Optional[str] = None,
        disposition: Union[Disposition, str, None] = None,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> PresignedRequest:
        return await self.issuer.presigned_upload(
            key,
            expires_in=expires_in,
            content_type=content_type,
            content_length=content_length,
            checksum=checksum,
            filename=filename,
            disposition=disposition,
            custom_metadata=custom_metadata,
        )

    async def health_check(self) -> bool:
        """Check gateway connectivity and bucket access."""
        try:
            await anyio.to_thread.run_sync(
                partial(
                    self.client.head_bucket,
                    Bucket=self.bucket
                )
            )
            logger.info("Storj health check passed", service=self.name, bucket=self.bucket)
            return True
        except Exception as e:
            logger.error("Storj health check failed", service=self.name, error=str(e))
            return False


async def build_storj_service(name: str, config: StorageConfig) -> StorjService:
    """Build Storj storage service.

    Args:
        name: Configured service name
        config: Storage configuration

    Returns:
        Configured Storj service instance
    """
    if not config.access_key_id or not config.secret_access_key:
        raise ConfigurationError(f"Storj service '{name}' requires access_key_id and secret_access_key")
    if config.public and not (config.link_sharing_address and config.share_access_key_id):
        raise ConfigurationError(
            f"Public Storj service '{name}' requires link_sharing_address and share_access_key_id"
        )

    import boto3
    from botocore.config import Config as BotoConfig

    boto_config = BotoConfig(
        region_name=config.region or "us-east-1",
        signature_version="s3v4",
        s3={"addressing_style": "path"},
        retries={
            "max_attempts": config.max_retry_attempts,
            "mode": "standard"
        },
        connect_timeout=config.timeout,
        read_timeout=config.timeout
    )

    client_args: dict[str, Any] = {
        "service_name": "s3",
        "config": boto_config,
        "aws_access_key_id": config.access_key_id,
        "aws_secret_access_key": config.secret_access_key,
    }
    if config.endpoint:
        client_args["endpoint_url"] = config.endpoint
        client_args["use_ssl"] = config.enable_ssl

    client = boto3.client(**client_args)
    service = StorjService(client, config, name=name)

    if not await service.health_check():
        raise ConfigurationError(f"Failed to connect to Storj gateway for service '{name}'")

    return service
