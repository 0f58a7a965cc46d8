"""File validation utilities for attachment content security.

Validates file signatures (magic numbers) to prevent MIME type spoofing,
and checks ZIP-based uploads (zip, docx, xlsx) against zip bombs.
"""

from __future__ import annotations

import logging
import zipfile
from io import BytesIO

logger = logging.getLogger(__name__)

ZIP_SIGNATURES = (b"PK\x03\x04", b"PK\x05\x06")
OLE2_SIGNATURE = (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1",)

# MIME type -> accepted leading bytes. Types absent here (text/plain) have no
# reliable signature and are not checked.
SIGNATURES: dict[str, tuple[bytes, ...]] = {
    "image/png": (b"\x89PNG\r\n\x1a\n",),
    "image/jpeg": (b"\xff\xd8\xff",),
    "image/gif": (b"GIF87a", b"GIF89a"),
    "application/pdf": (b"%PDF-",),
    "application/msword": OLE2_SIGNATURE,
    "application/vnd.ms-excel": OLE2_SIGNATURE,
    "application/zip": ZIP_SIGNATURES,
    "application/x-zip-compressed": ZIP_SIGNATURES,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ZIP_SIGNATURES,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ZIP_SIGNATURES,
}

ZIP_BASED_MIME_TYPES = frozenset(
    mime for mime, signatures in SIGNATURES.items() if signatures is ZIP_SIGNATURES
)


def normalize_mime(mime_type: str | None) -> str:
    """Lowercase a Content-Type value and drop its parameters.

    Examples:
        >>> normalize_mime("Text/Plain; charset=utf-8")
        'text/plain'
    """
    if not mime_type:
        return ""
    return mime_type.split(";", 1)[0].strip().lower()


def validate_file_signature(data: bytes, mime_type: str) -> bool:
    """Validate file magic numbers against the declared MIME type.

    Prevents renamed executables or scripts from being stored as images or
    documents.

    Args:
        data: File content as bytes.
        mime_type: Normalized declared MIME type.

    Returns:
        True if the signature matches (or the type has no known signature),
        False otherwise.
    """
    if mime_type == "image/webp":
        if len(data) >= 12 and data.startswith(b"RIFF") and data[8:12] == b"WEBP":
            return True
    else:
        signatures = SIGNATURES.get(mime_type)
        if signatures is None:
            return True
        if any(data.startswith(sig) for sig in signatures):
            return True

    logger.warning(
        "file_signature.invalid",
        extra={
            "expected_type": mime_type,
            "actual_prefix": data[:10].hex() if data else "EMPTY",
        },
    )
    return False


def is_zip_based(mime_type: str) -> bool:
    return mime_type in ZIP_BASED_MIME_TYPES


def validate_zip_safety(
    data: bytes,
    max_ratio: float = 100.0,
    max_uncompressed_mb: int = 50,
) -> None:
    """Validate ZIP-based files against zip bomb attacks.

    Checks:
    1. Compression ratio (uncompressed/compressed) isn't suspiciously high
    2. Total uncompressed size isn't excessive

    Args:
        data: File content as bytes.
        max_ratio: Maximum allowed compression ratio (default: 100x).
        max_uncompressed_mb: Max uncompressed size in MB (default: 50MB).

    Raises:
        ValueError: If the archive is malformed or appears to be a zip bomb.
    """
    try:
        with zipfile.ZipFile(BytesIO(data)) as zf:
            compressed_size = sum(info.compress_size for info in zf.filelist)
            uncompressed_size = sum(info.file_size for info in zf.filelist)
    except zipfile.BadZipFile as exc:
        logger.warning("zip_safety.bad_zip", extra={"error": str(exc)})
        raise ValueError("Invalid ZIP file structure") from exc

    # An empty archive is harmless
    if uncompressed_size == 0:
        return

    if compressed_size == 0:
        logger.warning("zip_safety.invalid_zip", extra={"reason": "zero_compressed_size"})
        raise ValueError("Invalid ZIP file: compressed size is zero")

    ratio = uncompressed_size / compressed_size
    max_bytes = max_uncompressed_mb * 1024 * 1024

    if ratio > max_ratio:
        logger.warning(
            "zip_safety.suspicious_ratio",
            extra={
                "ratio": ratio,
                "max_ratio": max_ratio,
                "compressed_mb": compressed_size / (1024 * 1024),
                "uncompressed_mb": uncompressed_size / (1024 * 1024),
            },
        )
        raise ValueError(
            f"Suspicious compression ratio: {ratio:.1f}x. "
            f"Maximum allowed: {max_ratio}x"
        )

    if uncompressed_size > max_bytes:
        logger.warning(
            "zip_safety.excessive_size",
            extra={
                "uncompressed_mb": uncompressed_size / (1024 * 1024),
                "max_mb": max_uncompressed_mb,
            },
        )
        raise ValueError(
            f"Uncompressed size ({uncompressed_size / (1024 * 1024):.1f}MB) "
            f"exceeds limit ({max_uncompressed_mb}MB)"
        )

    logger.debug(
        "zip_safety.validated",
        extra={"ratio": ratio, "uncompressed_mb": uncompressed_size / (1024 * 1024)},
    )
