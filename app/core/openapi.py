"""OpenAPI metadata and customization utilities.

Provides a helper to enrich the generated OpenAPI schema with:
- Tags metadata for each router
- Session security schemes (auth cookie or ``Authorization: Bearer``)
  applied to authenticated operations only

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

# Paths served without a session (rate limited only, or not at all)
PUBLIC_PATH_PREFIXES = ("/health", "/api/public", "/api/users")

TAGS_METADATA = [
    {"name": "Projects", "description": "Pages owned by the signed-in user."},
    {"name": "Tasks", "description": "Checklist items of a project."},
    {"name": "Kanban", "description": "Kanban board cards and board sync."},
    {"name": "Sync", "description": "Offline sync: pull changed projects and push local edits."},
    {"name": "Users", "description": "User directory used by the assignee picker."},
    {"name": "Upload", "description": "Public file uploads (covers, attachments)."},
    {"name": "Public", "description": "Read-only view of published projects."},
    {"name": "Health", "description": "Liveness and readiness checks."},
]


def apply_openapi_customizations(app: FastAPI, cookie_name: str) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and session security.

    - Injects components.securitySchemes for the session cookie and bearer token
    - Marks all operations as requiring a session by default, then exempts the
      public paths by setting ``security: []``

    Args:
        app: Application whose schema is patched.
        cookie_name: Session cookie advertised in the cookie scheme.
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "SessionCookie",
            {
                "type": "apiKey",
                "in": "cookie",
                "name": cookie_name,
                "description": "Session cookie issued by the sign-in flow.",
            },
        )
        security_schemes.setdefault(
            "SessionBearer",
            {
                "type": "http",
                "scheme": "bearer",
                "description": "Session token sent as a bearer token (mobile clients).",
            },
        )

        schema.setdefault("security", [{"SessionCookie": []}, {"SessionBearer": []}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if path.startswith(PUBLIC_PATH_PREFIXES):
                for method_obj in methods.values():
                    if isinstance(method_obj, dict):
                        method_obj["security"] = []

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
