"""OpenAPI metadata and customization utilities.

Provides a helper to enrich the generated OpenAPI schema with:
- Tags metadata
- API key security schemes (``X-API-Key`` header or ``Authorization: Bearer``)
  with per-path overrides for the unauthenticated service endpoints

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

# Service endpoints never require an API key
PUBLIC_PATHS = frozenset({"/api", "/api/health", "/api/openapi"})

TAGS_METADATA = [
    {"name": "Users", "description": "People who report, own and fix bugs."},
    {"name": "Projects", "description": "Projects and their members."},
    {"name": "Bugs", "description": "Bug reports, their comments, history and attachments."},
    {"name": "Comments", "description": "Single comment access."},
    {"name": "Attachments", "description": "File uploads linked to bugs or projects."},
    {"name": "Service", "description": "API index and liveness checks."},
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and security.

    - Injects components.securitySchemes for API key auth
    - Marks all operations as requiring a key by default, then exempts the
      service endpoints by setting ``security: []``
    - Adds tags metadata if not present
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Provide your API key via the X-API-Key header.",
            },
        )
        security_schemes.setdefault(
            "BearerAuth",
            {
                "type": "http",
                "scheme": "bearer",
                "description": "Alternatively send the API key as a Bearer token.",
            },
        )

        schema.setdefault("security", [{"ApiKeyAuth": []}, {"BearerAuth": []}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if path in PUBLIC_PATHS:
                for method_obj in methods.values():
                    if isinstance(method_obj, dict):
                        method_obj["security"] = []

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
