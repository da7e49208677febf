"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Subscription and browser admin endpoints take form-encoded fields instead,
declared directly on the route.
"""

from pydantic import BaseModel, Field

from src.domain.models import PublishSummary


class MessageResponse(BaseModel):
    """Generic success response."""

    message: str


class NewsletterContent(BaseModel):
    """Both renditions of a newsletter issue body."""

    text: str = Field(..., min_length=1, description="Plain-text body")
    html: str = Field(..., min_length=1, description="HTML body")


class PublishRequest(BaseModel):
    """Request model for the machine-oriented publish endpoint."""

    title: str = Field(..., min_length=1, description="Newsletter issue title (email subject)")
    content: NewsletterContent


class PublishResponse(BaseModel):
    """Response model for an accepted publish."""

    message: str
    delivered: int
    skipped_invalid: int
    failed: int
    already_delivered: int
    replayed: bool

    @classmethod
    def from_summary(cls, summary: PublishSummary) -> "PublishResponse":
        return cls(
            message=summary.message,
            delivered=summary.delivered,
            skipped_invalid=summary.skipped_invalid,
            failed=summary.failed,
            already_delivered=summary.already_delivered,
            replayed=summary.replayed,
        )


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
