"""Byte transfer against the S3 gateway: single-shot PUT, multipart upload
and ranged streaming download.

All boto3 calls are blocking; each one runs on a worker thread and the
calls belonging to one operation are issued strictly one after another.
"""
from __future__ import annotations

import inspect
import io
import math
from contextlib import aclosing
from functools import partial
from typing import Any, AsyncIterator, BinaryIO, Callable, Optional, Union

import anyio

from core.logging_config import get_logger
from . import metadata as metadata_codec
from .checksum import ChecksumAccumulator, compute_checksum, validate_checksum
from .config import MAX_PARTS, StorageConfig
from .exceptions import (
    NotFoundError,
    StorageError,
    ValidationError,
    translate_error,
)
from .models import Disposition, StoredObject, UploadResult
from .utils import guess_content_type

logger = get_logger(__name__)

Content = Union[bytes, bytearray, memoryview, BinaryIO]
ChunkConsumer = Callable[[bytes], Any]

DELETE_BATCH_SIZE = 1000


def as_stream(content: Content) -> BinaryIO:
    """Wrap in-memory content so every upload reads from a stream."""
    if isinstance(content, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(content))
    if hasattr(content, "read"):
        return content
    raise ValidationError(f"Unsupported content type: {type(content).__name__}")


def content_length(stream: BinaryIO) -> Optional[int]:
    """Remaining byte count of a seekable stream, None when unknown."""
    try:
        if not stream.seekable():
            return None
        position = stream.tell()
        end = stream.seek(0, io.SEEK_END)
        stream.seek(position)
        return end - position
    except (AttributeError, OSError, ValueError):
        return None


def read_up_to(stream: BinaryIO, size: int) -> bytes:
    """Read size bytes, fewer only at end of stream."""
    buffer = bytearray()
    while len(buffer) < size:
        chunk = stream.read(size - len(buffer))
        if not chunk:
            break
        if not isinstance(chunk, (bytes, bytearray, memoryview)):
            raise ValidationError(
                f"Upload streams must be opened in binary mode, read returned {type(chunk).__name__}"
            )
        buffer.extend(chunk)
    return bytes(buffer)


class TransferEngine:
    """Moves bytes between callers and one bucket."""

    def __init__(self, client: Any, config: StorageConfig):
        self.client = client
        self.config = config
        self.bucket = config.bucket

    # Upload

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
        """Upload content, going multipart once it reaches the threshold.

        The first ``multipart_upload_threshold`` bytes are read up front;
        anything shorter is sent with one PUT, anything else is streamed as
        multipart parts. Metadata and checksum handling are shared. Without an
        explicit content_type one is guessed from filename.
        """
        if checksum is not None:
            validate_checksum(checksum)
        if content_type is None and filename:
            content_type = guess_content_type(filename)
        params = metadata_codec.encode(content_type, filename, disposition, custom_metadata)

        stream = as_stream(content)
        total = content_length(stream)
        threshold = self.config.multipart_upload_threshold
        head = await anyio.to_thread.run_sync(read_up_to, stream, threshold)

        if len(head) < threshold:
            logger.debug("Single-shot upload", key=key, size=len(head))
            return await self._put_object(key, head, checksum, params)

        logger.debug("Multipart upload", key=key, size=total, threshold=threshold)
        return await self._multipart_upload(key, head, stream, total, checksum, params)

    async def _put_object(
        self,
        key: str,
        data: bytes,
        checksum: Optional[str],
        params: dict[str, Any],
    ) -> UploadResult:
        digest = checksum or compute_checksum(data)
        try:
            response = await anyio.to_thread.run_sync(
                partial(
                    self.client.put_object,
                    Bucket=self.bucket,
                    Key=key,
                    Body=data,
                    ContentMD5=digest,
                    **params
                )
            )
        except Exception as e:
            translate_error(e, f"upload {key}")

        logger.info("Uploaded to Storj", key=key, size=len(data), multipart=False)
        return UploadResult(
            key=key,
            etag=(response or {}).get("ETag", "").strip('"') or None,
            size=len(data),
            checksum=digest,
            content_type=params.get("ContentType"),
        )

    def _part_size(self, total: Optional[int]) -> int:
        part_size = self.config.multipart_part_size
        if total:
            part_size = max(part_size, math.ceil(total / MAX_PARTS))
        return part_size

    async def _iter_parts(
        self,
        head: bytes,
        stream: BinaryIO,
        part_size: int,
    ) -> AsyncIterator[bytes]:
        buffer = bytearray(head)
        while True:
            if len(buffer) < part_size:
                buffer.extend(
                    await anyio.to_thread.run_sync(read_up_to, stream, part_size - len(buffer))
                )
            if not buffer:
                return
            yield bytes(buffer[:part_size])
            del buffer[:part_size]

    async def _multipart_upload(
        self,
        key: str,
        head: bytes,
        stream: BinaryIO,
        total: Optional[int],
        checksum: Optional[str],
        params: dict[str, Any],
    ) -> UploadResult:
        try:
            created = await anyio.to_thread.run_sync(
                partial(
                    self.client.create_multipart_upload,
                    Bucket=self.bucket,
                    Key=key,
                    **params
                )
            )
        except Exception as e:
            translate_error(e, f"start multipart upload {key}")

        upload_id = created["UploadId"]
        accumulator = ChecksumAccumulator()
        parts: list[dict[str, Any]] = []

        try:
            part_size = self._part_size(total)
            async for data in self._iter_parts(head, stream, part_size):
                number = len(parts) + 1
                if number > MAX_PARTS:
                    raise ValidationError(
                        f"Upload of {key} needs more than {MAX_PARTS} parts of {part_size} bytes"
                    )
                accumulator.update(data)
                response = await anyio.to_thread.run_sync(
                    partial(
                        self.client.upload_part,
                        Bucket=self.bucket,
                        Key=key,
                        UploadId=upload_id,
                        PartNumber=number,
                        Body=data,
                        ContentMD5=compute_checksum(data)
                    )
                )
                parts.append({"PartNumber": number, "ETag": response["ETag"]})

            if checksum is not None:
                accumulator.verify(checksum, key)

            response = await anyio.to_thread.run_sync(
                partial(
                    self.client.complete_multipart_upload,
                    Bucket=self.bucket,
                    Key=key,
                    UploadId=upload_id,
                    MultipartUpload={"Parts": parts}
                )
            )
        except Exception as e:
            await self._abort_multipart_upload(key, upload_id)
            translate_error(e, f"multipart upload {key}")

        logger.info(
            "Uploaded to Storj",
            key=key,
            size=accumulator.size,
            multipart=True,
            parts=len(parts),
        )
        return UploadResult(
            key=key,
            etag=(response or {}).get("ETag", "").strip('"') or None,
            size=accumulator.size,
            checksum=checksum or accumulator.base64digest(),
            multipart=True,
            parts=len(parts),
            content_type=params.get("ContentType"),
        )

    async def _abort_multipart_upload(self, key: str, upload_id: str) -> None:
        try:
            await anyio.to_thread.run_sync(
                partial(
                    self.client.abort_multipart_upload,
                    Bucket=self.bucket,
                    Key=key,
                    UploadId=upload_id
                )
            )
            logger.warning("Aborted multipart upload", key=key, upload_id=upload_id)
        except Exception as e:
            # The original failure is what the caller sees
            logger.error(
                "Failed to abort multipart upload",
                key=key,
                upload_id=upload_id,
                error=str(e),
            )

    # Download

    async def download(
        self,
        key: str,
        consumer: Optional[ChunkConsumer] = None,
    ) -> Optional[bytes]:
        """Download the whole object, or feed it chunk by chunk to consumer.

        The consumer may be a plain function or a coroutine function; the
        next range is requested only after it returns.
        """
        if consumer is None:
            return await self._get_object(key)

        async with aclosing(self.stream_download(key)) as chunks:
            async for chunk in chunks:
                result = consumer(chunk)
                if inspect.isawaitable(result):
                    await result
        return None

    async def _get_object(self, key: str) -> bytes:
        try:
            response = await anyio.to_thread.run_sync(
                partial(
                    self.client.get_object,
                    Bucket=self.bucket,
                    Key=key
                )
            )
            body = response["Body"]
            try:
                data = await anyio.to_thread.run_sync(body.read)
            finally:
                await anyio.to_thread.run_sync(body.close)
        except Exception as e:
            translate_error(e, f"download {key}")

        logger.info("Downloaded from Storj", key=key, size=len(data))
        return data

    async def stream_download(self, key: str) -> AsyncIterator[bytes]:
        """Yield the object in offset order using sequential ranged reads.

        Each read asks for at most ``download_chunk_size`` bytes; a shorter
        answer just moves the next range start. Chunk sizes are not part
        of the contract, only ordered and gapless coverage.
        """
        head = await self._head(key)
        size = int(head.get("ContentLength", 0) or 0)
        etag = head.get("ETag")
        chunk_size = self.config.download_chunk_size

        offset = 0
        while offset < size:
            end = min(offset + chunk_size, size) - 1
            chunk = await self._get_range(key, offset, end, etag)
            if not chunk:
                raise StorageError(f"Empty range read for {key} at offset {offset} of {size}")
            offset += len(chunk)
            yield chunk

        logger.info("Streamed from Storj", key=key, size=size)

    async def download_chunk(self, key: str, start: int, end: int) -> bytes:
        """Download the inclusive byte range [start, end]."""
        if start < 0 or end < start:
            raise ValidationError(f"Invalid byte range: {start}-{end}")
        return await self._get_range(key, start, end)

    async def _get_range(
        self,
        key: str,
        start: int,
        end: int,
        etag: Optional[str] = None,
    ) -> bytes:
        args: dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": key,
            "Range": f"bytes={start}-{end}",
        }
        if etag:
            # Fail instead of splicing two versions of a replaced object
            args["IfMatch"] = etag
        try:
            response = await anyio.to_thread.run_sync(
                partial(self.client.get_object, **args)
            )
            body = response["Body"]
            try:
                data = await anyio.to_thread.run_sync(body.read)
            finally:
                await anyio.to_thread.run_sync(body.close)
        except Exception as e:
            translate_error(e, f"download range {start}-{end} of {key}")

        logger.debug("Range read", key=key, start=start, end=end, received=len(data))
        return data

    # Object management

    async def _head(self, key: str) -> dict[str, Any]:
        try:
            return await anyio.to_thread.run_sync(
                partial(
                    self.client.head_object,
                    Bucket=self.bucket,
                    Key=key
                )
            )
        except Exception as e:
            translate_error(e, f"head {key}")

    async def head(self, key: str) -> StoredObject:
        """Read size and metadata of an object."""
        return metadata_codec.stored_object(key, await self._head(key))

    async def exists(self, key: str) -> bool:
        try:
            await self._head(key)
            return True
        except NotFoundError:
            return False

    async def delete(self, key: str) -> None:
        """Delete an object; deleting a missing key is not an error."""
        try:
            await anyio.to_thread.run_sync(
                partial(
                    self.client.delete_object,
                    Bucket=self.bucket,
                    Key=key
                )
            )
        except Exception as e:
            try:
                translate_error(e, f"delete {key}")
            except NotFoundError:
                logger.debug("Delete of missing key", key=key)
                return
        logger.info("Deleted from Storj", key=key)

    def _list_keys(self, prefix: str) -> list[str]:
        keys: list[str] = []
        args: dict[str, Any] = {"Bucket": self.bucket, "Prefix": prefix}
        while True:
            response = self.client.list_objects_v2(**args)
            keys.extend(obj["Key"] for obj in response.get("Contents", []))
            if not response.get("IsTruncated"):
                return keys
            args["ContinuationToken"] = response["NextContinuationToken"]

    async def delete_prefixed(self, prefix: str) -> int:
        """Delete every object whose key starts with prefix."""
        try:
            keys = await anyio.to_thread.run_sync(self._list_keys, prefix)
            for start in range(0, len(keys), DELETE_BATCH_SIZE):
                batch = keys[start:start + DELETE_BATCH_SIZE]
                await anyio.to_thread.run_sync(
                    partial(
                        self.client.delete_objects,
                        Bucket=self.bucket,
                        Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True}
                    )
                )
        except Exception as e:
            translate_error(e, f"delete prefixed {prefix}")

        logger.info("Deleted prefixed from Storj", prefix=prefix, count=len(keys))
        return len(keys)

    async def update_metadata(
        self,
        key: str,
        content_type: Optional[str] = None,
        filename: Optional[str] = None,
        disposition: Union[Disposition, str, None] = None,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> None:
        """Replace all metadata of an object in one server-side self-copy.

        Fields left as None are cleared, so readers never see a mix of
        old and new values.
        """
        params = metadata_codec.encode(content_type, filename, disposition, custom_metadata)
        try:
            await anyio.to_thread.run_sync(
                partial(
                    self.client.copy_object,
                    Bucket=self.bucket,
                    Key=key,
                    CopySource={"Bucket": self.bucket, "Key": key},
                    MetadataDirective="REPLACE",
                    **params
                )
            )
        except Exception as e:
            translate_error(e, f"update metadata {key}")

        logger.info("Updated metadata on Storj", key=key)
