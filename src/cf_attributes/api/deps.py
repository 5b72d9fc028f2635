"""
cf_attributes.api.deps

FastAPI dependencies for the API layer.
"""

from __future__ import annotations

from fastapi import Request

from cf_attributes.services.processor import AttributesProcessor


def processor_dep(request: Request) -> AttributesProcessor:
    # Attached by `create_app`; started/stopped with the app lifecycle.
    return request.app.state.processor  # type: ignore[attr-defined]
