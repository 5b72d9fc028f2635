"""
cf_attributes.errors

Error taxonomy shared by the platform client, cache, resolver and enricher.

Responsibilities:
- Separate fatal configuration problems from per-call fetch failures.
- Carry the requested kind/id on fetch failures for diagnostics.
- Model shutdown/cancellation as a real asyncio cancellation.
"""

from __future__ import annotations

import asyncio


class CfAttributesError(Exception):
    pass


class ConfigurationError(CfAttributesError):
    """
    Invalid or incomplete configuration (auth scheme, endpoint).
    Raised at startup and prevents the processor from starting.
    """


class FetchError(CfAttributesError):
    """
    A platform API call failed. The underlying cause is chained via `raise ... from`.
    """

    def __init__(self, message: str, *, kind: str | None = None, object_id: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.object_id = object_id

    def __str__(self) -> str:
        base = super().__str__()
        if self.__cause__ is not None:
            return f"{base}: {self.__cause__}"
        return base


class AuthenticationError(FetchError):
    pass


class EncodingError(CfAttributesError):
    pass


class Canceled(asyncio.CancelledError):
    """
    Raised when a fetch is aborted by task cancellation or by client shutdown.
    Subclasses CancelledError so asyncio keeps treating it as cancellation.
    """

    def __init__(self, message: str = "canceled", *, kind: str | None = None, object_id: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.object_id = object_id


# --- Module Notes -----------------------------------------------------------
# `Canceled` intentionally does not derive from CfAttributesError: `except Exception`
# handlers (per-resource degrade mode) must never swallow a shutdown.
