"""Request guards applied before routing."""

from .body_limit import BodyLimitMiddleware  # noqa: F401

__all__ = ["BodyLimitMiddleware"]
