"""Attachment files on local disk.

Blocking filesystem calls run in a worker thread so request handlers never
stall the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import re
import secrets
import time
from pathlib import Path

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_filename(filename: str) -> str:
    """Reduce a client-supplied name to a safe basename.

    Examples:
        >>> sanitize_filename("../../etc/pass wd.txt")
        'pass_wd.txt'
    """
    base = filename.replace("\\", "/").rsplit("/", 1)[-1]
    cleaned = _UNSAFE_CHARS.sub("_", base).lstrip(".")
    return cleaned[:200] or "file"


def build_stored_name(filename: str, *, now_ms: int | None = None) -> str:
    """``<epoch ms>-<6 hex chars>-<sanitized name>``."""
    timestamp = int(time.time() * 1000) if now_ms is None else now_ms
    return f"{timestamp}-{secrets.token_hex(3)}-{sanitize_filename(filename)}"


def public_path(stored_name: str) -> str:
    return f"{PUBLIC_PREFIX}/{stored_name}"


def resolve_stored_path(upload_dir: str | Path, stored_name: str) -> Path:
    return Path(upload_dir) / stored_name


def _write_bytes(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)


async def save_upload(upload_dir: str | Path, stored_name: str, data: bytes) -> Path:
    """Write ``data`` under ``upload_dir`` and return the file path."""
    target = resolve_stored_path(upload_dir, stored_name)
    await asyncio.to_thread(_write_bytes, target, data)
    logger.info("attachment.file_saved", extra={"stored_name": stored_name, "size": len(data)})
    return target


def remove_file_best_effort(target: str | Path) -> None:
    """Delete a stored file; failures are logged, never raised.

    Runs as a background task after the delete response has been sent, so
    there is no caller left to report an error to.
    """
    try:
        Path(target).unlink()
    except FileNotFoundError:
        logger.info("attachment.cleanup_missing", extra={"file_path": str(target)})
    except OSError as exc:
        logger.warning(
            "attachment.cleanup_failed",
            extra={"file_path": str(target), "error": str(exc)},
        )
    else:
        logger.info("attachment.cleanup_done", extra={"file_path": str(target)})
