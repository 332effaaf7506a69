"""Time-limited URLs for client-direct upload and read access.

Grants are stateless: the backend checks expiry and the signed
constraints when the URL is used, so nothing is validated here.
"""
from __future__ import annotations

from datetime import timedelta
from functools import partial
from typing import Any, Optional, Union
from urllib.parse import quote

import anyio

from core.logging_config import get_logger
from . import metadata as metadata_codec
from .checksum import validate_checksum
from .config import StorageConfig
from .exceptions import ValidationError, translate_error
from .models import Disposition, PresignedRequest

logger = get_logger(__name__)

ExpiresIn = Union[int, float, timedelta]


def to_seconds(expires_in: ExpiresIn) -> int:
    if isinstance(expires_in, timedelta):
        seconds = int(expires_in.total_seconds())
    else:
        seconds = int(expires_in)
    if seconds <= 0:
        raise ValidationError(f"expires_in must be positive, got {expires_in!r}")
    return seconds


class PresignedURLIssuer:
    """Builds signed PUT/GET URLs and link-sharing URLs for one bucket."""

    def __init__(self, client: Any, config: StorageConfig):
        self.client = client
        self.config = config
        self.bucket = config.bucket

    async def _sign(self, client_method: str, params: dict[str, Any], expires_in: int) -> str:
        try:
            return await anyio.to_thread.run_sync(
                partial(
                    self.client.generate_presigned_url,
                    ClientMethod=client_method,
                    Params={"Bucket": self.bucket, **params},
                    ExpiresIn=expires_in
                )
            )
        except Exception as e:
            translate_error(e, f"sign {client_method} {params.get('Key')}")

    async def url_for_direct_upload(
        self,
        key: str,
        expires_in: ExpiresIn,
        content_type: str,
        content_length: int,
        checksum: str,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> str:
        """Sign a PUT bound to content type, length and Content-MD5."""
        validate_checksum(checksum)
        if content_length < 0:
            raise ValidationError(f"content_length must not be negative, got {content_length}")

        params: dict[str, Any] = {
            "Key": key,
            "ContentType": content_type,
            "ContentLength": int(content_length),
            "ContentMD5": checksum,
        }
        custom = metadata_codec.validate_custom_metadata(custom_metadata)
        if custom:
            params["Metadata"] = custom

        url = await self._sign("put_object", params, to_seconds(expires_in))
        logger.debug("Signed direct upload", key=key, content_length=content_length)
        return url

    def headers_for_direct_upload(
        self,
        key: str,
        checksum: str,
        content_type: Optional[str] = None,
        filename: Optional[str] = None,
        disposition: Union[Disposition, str, None] = None,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> dict[str, str]:
        """Headers the client must send with its direct PUT."""
        headers = metadata_codec.encode_headers(content_type, filename, disposition, custom_metadata)
        headers["Content-MD5"] = validate_checksum(checksum)
        return headers

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
        """URL and headers of a direct upload in one request object."""
        seconds = to_seconds(expires_in)
        url = await self.url_for_direct_upload(
            key, seconds, content_type, content_length, checksum, custom_metadata
        )
        headers = self.headers_for_direct_upload(
            key, checksum, content_type, filename, disposition, custom_metadata
        )
        return PresignedRequest(url=url, method="PUT", headers=headers, expires_in=seconds)

    def link_sharing_url(self, key: str, disposition: Union[Disposition, str, None] = None) -> str:
        """Stable public URL served by the link-sharing service."""
        url = (
            f"{self.config.link_sharing_address}/raw/{self.config.share_access_key_id}"
            f"/{quote(self.bucket, safe='')}/{quote(key)}"
        )
        if metadata_codec.normalize_disposition(disposition) is Disposition.ATTACHMENT:
            url += "?download=1"
        return url

    async def url(
        self,
        key: str,
        expires_in: Optional[ExpiresIn] = None,
        filename: Optional[str] = None,
        disposition: Union[Disposition, str, None] = None,
        content_type: Optional[str] = None,
    ) -> str:
        """Read URL: link sharing when a share access key is configured, signed GET otherwise."""
        if self.config.link_sharing_enabled:
            return self.link_sharing_url(key, disposition)

        params: dict[str, Any] = {"Key": key}
        if filename is not None or disposition is not None:
            params["ResponseContentDisposition"] = metadata_codec.content_disposition(
                disposition, filename
            )
        if content_type:
            params["ResponseContentType"] = content_type

        seconds = to_seconds(expires_in if expires_in is not None else self.config.url_expires_in)
        return await self._sign("get_object", params, seconds)
