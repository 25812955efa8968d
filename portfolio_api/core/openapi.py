"""OpenAPI metadata customization.

Adds tag descriptions for the documentation page. The POST handlers return
hand-built envelopes, so their response schemas are described in the
handler docstrings instead.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {"name": "Chatbot", "description": "Questions answered by the portfolio assistant."},
    {"name": "Contact", "description": "Contact form delivery by email."},
    {"name": "Config", "description": "Feature flags for the static frontend."},
    {"name": "Health", "description": "Liveness checks."},
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags metadata."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
