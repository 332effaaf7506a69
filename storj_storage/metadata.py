"""Mapping between object metadata and S3 request parameters / HTTP headers.

Content-Disposition values carry both a traditional ``filename`` parameter
(ASCII fallback) and an RFC 5987 ``filename*`` parameter so that non-ASCII
filenames survive the round trip::

    attachment; filename="cool_data.txt"; filename*=UTF-8''cool_data.txt
"""
from __future__ import annotations

import re
import unicodedata
from typing import Any, Mapping, Optional, Union
from urllib.parse import quote, unquote

from core.logging_config import get_logger
from .exceptions import InvalidMetadataError
from .models import Disposition, ObjectMetadata, StoredObject

logger = get_logger(__name__)

# Characters kept verbatim in each filename form; everything else is percent-escaped
TRADITIONAL_SAFE = " !#$+^`|"
RFC5987_SAFE = "!#$&+^`|"

AMZ_META_PREFIX = "x-amz-meta-"

_PARAM_RE = re.compile(
    r';\s*(?P<name>[A-Za-z0-9_.\-]+\*?)\s*=\s*(?P<value>"(?:[^"\\]|\\.)*"|[^;]*)'
)
_TOKEN_RE = re.compile(r"^[!#$%&'*+.^_`|~0-9A-Za-z\-]+$")


def normalize_disposition(
    disposition: Union[Disposition, str, None],
    default: Optional[Disposition] = Disposition.INLINE,
) -> Optional[Disposition]:
    if disposition is None:
        return default
    try:
        return Disposition(str(getattr(disposition, "value", disposition)).strip().lower())
    except ValueError as e:
        raise InvalidMetadataError(f"Unsupported disposition: {disposition!r}") from e


def sanitize_filename(filename: str) -> str:
    """Drop CR/LF and surrounding spaces from a display filename."""
    cleaned = filename.replace("\r", " ").replace("\n", " ").strip()
    if not cleaned:
        raise InvalidMetadataError(f"Filename is empty: {filename!r}")
    return cleaned


def ascii_filename(filename: str) -> str:
    """Transliterate to ASCII (``?`` for what cannot be) and percent-escape."""
    decomposed = unicodedata.normalize("NFKD", filename)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    transliterated = stripped.encode("ascii", "replace").decode("ascii")
    return quote(transliterated, safe=TRADITIONAL_SAFE)


def content_disposition(
    disposition: Union[Disposition, str, None],
    filename: Optional[str] = None,
) -> str:
    """Render a Content-Disposition header value."""
    mode = normalize_disposition(disposition)
    if filename is None:
        return mode.value
    name = sanitize_filename(str(filename))
    return (
        f'{mode.value}; filename="{ascii_filename(name)}"; '
        f"filename*=UTF-8''{quote(name, safe=RFC5987_SAFE)}"
    )


def parse_content_disposition(header: str) -> tuple[Disposition, Optional[str]]:
    """Parse a Content-Disposition value back into (disposition, filename).

    ``filename*`` wins over ``filename`` when both are present.

    Raises:
        InvalidMetadataError: If the value is malformed
    """
    if not header or not header.strip():
        raise InvalidMetadataError("Content-Disposition is empty")

    mode, _, rest = header.partition(";")
    disposition = normalize_disposition(mode, default=None)
    params: dict[str, str] = {}
    rest = ";" + rest if rest else ""
    for match in _PARAM_RE.finditer(rest):
        value = match.group("value").strip()
        if value.startswith('"') and value.endswith('"') and len(value) >= 2:
            value = re.sub(r"\\(.)", r"\1", value[1:-1])
        params[match.group("name").lower()] = value

    extended = params.get("filename*")
    if extended is not None:
        charset, sep, remainder = extended.partition("'")
        _, sep2, encoded = remainder.partition("'")
        if not (sep and sep2) or charset.lower() not in ("utf-8", "iso-8859-1"):
            raise InvalidMetadataError(f"Malformed extended filename: {extended!r}")
        try:
            return disposition, unquote(encoded, encoding=charset.lower(), errors="strict")
        except UnicodeDecodeError as e:
            raise InvalidMetadataError(f"Malformed extended filename: {extended!r}") from e

    if "filename" in params:
        return disposition, unquote(params["filename"])
    return disposition, None


def validate_custom_metadata(custom_metadata: Optional[Mapping[str, Any]]) -> dict[str, str]:
    """Check custom metadata is a str -> str mapping with header-safe keys."""
    if not custom_metadata:
        return {}
    result: dict[str, str] = {}
    for key, value in custom_metadata.items():
        if not isinstance(key, str) or not _TOKEN_RE.match(key):
            raise InvalidMetadataError(f"Invalid custom metadata key: {key!r}")
        if not isinstance(value, str):
            raise InvalidMetadataError(
                f"Custom metadata value for {key!r} must be a string, got {type(value).__name__}"
            )
        result[key] = value
    return result


def encode(
    content_type: Optional[str] = None,
    filename: Optional[str] = None,
    disposition: Union[Disposition, str, None] = None,
    custom_metadata: Optional[Mapping[str, str]] = None,
) -> dict[str, Any]:
    """Build boto3 request parameters for the given metadata."""
    params: dict[str, Any] = {}
    if content_type:
        params["ContentType"] = content_type
    if filename is not None or disposition is not None:
        params["ContentDisposition"] = content_disposition(disposition, filename)
    params["Metadata"] = validate_custom_metadata(custom_metadata)
    return params


def encode_headers(
    content_type: Optional[str] = None,
    filename: Optional[str] = None,
    disposition: Union[Disposition, str, None] = None,
    custom_metadata: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """Build raw HTTP headers matching encode() for a client-side PUT."""
    params = encode(content_type, filename, disposition, custom_metadata)
    headers: dict[str, str] = {}
    if "ContentType" in params:
        headers["Content-Type"] = params["ContentType"]
    if "ContentDisposition" in params:
        headers["Content-Disposition"] = params["ContentDisposition"]
    for key, value in params["Metadata"].items():
        headers[f"{AMZ_META_PREFIX}{key}"] = value
    return headers


def decode(head: Mapping[str, Any]) -> ObjectMetadata:
    """Build ObjectMetadata from a head_object / get_object response."""
    disposition: Optional[Disposition] = None
    filename: Optional[str] = None
    header = head.get("ContentDisposition")
    if header:
        try:
            disposition, filename = parse_content_disposition(header)
        except InvalidMetadataError as e:
            logger.warning("Unparseable content disposition", header=header, error=str(e))

    return ObjectMetadata(
        content_type=head.get("ContentType"),
        disposition=disposition,
        filename=filename,
        custom_metadata=dict(head.get("Metadata") or {}),
    )


def stored_object(key: str, head: Mapping[str, Any]) -> StoredObject:
    """Build StoredObject from a head_object response."""
    custom: dict[str, str] = {}
    if head.get("ContentType"):
        custom["content-type"] = head["ContentType"]
    if head.get("ContentDisposition"):
        custom["content-disposition"] = head["ContentDisposition"]
    custom.update(head.get("Metadata") or {})

    return StoredObject(
        key=key,
        size=int(head.get("ContentLength", 0) or 0),
        etag=(head.get("ETag") or "").strip('"') or None,
        last_modified=head.get("LastModified"),
        content_type=head.get("ContentType"),
        content_disposition=head.get("ContentDisposition"),
        metadata=decode(head),
        custom=custom,
    )
