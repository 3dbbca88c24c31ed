"""Exception types for Emission Lens.

Only the Climate TRACE client raises ``UpstreamError``. Every public fetch
catches it at its own boundary and degrades to an empty or fallback result,
so callers of ``EmissionsService`` never see it.

    EmissionLensError (base)
    └── UpstreamError
"""
from typing import Optional


class EmissionLensError(Exception):
    """Base exception for all Emission Lens errors."""


class UpstreamError(EmissionLensError):
    """The upstream emissions API could not be reached or answered non-2xx.

    Attributes:
        url: Request URL that failed
        status: HTTP status code, or None for network/timeout/decode errors
    """

    def __init__(self, message: str, url: str = "", status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is not None:
            return f"{base} (HTTP {self.status})"
        return base
