# sellerscore/errors.py
from __future__ import annotations


class MotivationError(Exception):
    """Base class for everything the scoring engine raises on purpose."""


class UnresolvableIdentityError(MotivationError):
    """
    Neither an address nor a resolvable property id was supplied.
    The only error category that reaches callers of the engine.
    """

    def __init__(self, message: str, *, property_id: str | None = None) -> None:
        super().__init__(message)
        self.property_id = property_id


class ScoringStageError(MotivationError):
    """Malformed input blew up classification or standard scoring."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"{stage}: {message}")
        self.stage = stage


class ProviderError(MotivationError):
    """An external signal provider failed. Always converted into a fetch error entry."""

    def __init__(self, source: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.source = source
        self.status_code = status_code


class AdjusterError(MotivationError):
    """The AI adjustment collaborator failed or returned garbage."""
