"""Application services built on the scheduling engine and card store."""

from .reviews import ReviewResult, ReviewService

__all__ = ["ReviewResult", "ReviewService"]
