"""Caller authentication and identity.

Session handling lives in an upstream identity layer. This service only:
- validates an API key (``X-API-Key`` or ``Authorization: Bearer``) against
  a comma-separated list from the environment, when enabled;
- reads the acting user id the upstream layer forwards in ``X-User-Id``.

Both are exposed as FastAPI dependencies.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Annotated

from fastapi import Header

from bugtracker.core.config import settings
from bugtracker.core.errors import AuthenticationAppError, PermissionAppError, ValidationAppError

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> parse_api_keys("key1, key2 , key3 ")
        {'key1', 'key2', 'key3'}
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()

    return {key.strip() for key in keys_string.split(",") if key.strip()}


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def validate_api_key(provided_key: str) -> None:
    """Validate that provided API key matches configured keys.

    Raises:
        PermissionAppError: If the key is unknown or no keys are configured.
    """
    valid_keys = parse_api_keys(settings.app.api_keys)

    if not valid_keys:
        logger.error(
            "api_key_validation_failed",
            extra={"reason": "api_keys_not_configured"},
        )
        raise PermissionAppError(
            code="API_KEYS_NOT_CONFIGURED",
            message="API key authentication is enabled but no valid keys are configured",
        )

    if provided_key not in valid_keys:
        logger.warning(
            "api_key_validation_failed",
            extra={
                "reason": "invalid_api_key",
                "api_key_hash": hashlib.sha256(provided_key.encode()).hexdigest()[:16],
            },
        )
        raise PermissionAppError(code="INVALID_API_KEY", message="Invalid API key")


async def verify_api_key(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """FastAPI dependency for API key authentication.

    Can be disabled by setting APP_API_KEY_REQUIRED=false (the default).

    Raises:
        AuthenticationAppError: 401 when no key was supplied.
        PermissionAppError: 403 when the key is not recognised.
    """
    if not settings.app.api_key_required:
        return

    provided = x_api_key or _bearer_token(authorization)
    if not provided:
        logger.info("auth.missing_key")
        raise AuthenticationAppError(
            code="AUTH_REQUIRED",
            message="Authentication required. Provide X-API-Key or a Bearer token.",
        )

    validate_api_key(provided)


async def get_actor_id(
    x_user_id: Annotated[str | None, Header(alias="X-User-Id")] = None,
) -> int | None:
    """Acting user forwarded by the identity layer, if any.

    Raises:
        ValidationAppError: When the header is present but not a positive integer.
    """
    value = (x_user_id or "").strip()
    if not value:
        return None
    if not (value.isascii() and value.isdigit()) or int(value) <= 0:
        raise ValidationAppError(code="INVALID_USER_ID", message="X-User-Id must be a positive integer")
    return int(value)
