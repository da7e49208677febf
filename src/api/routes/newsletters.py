"""
Machine-oriented publish route.

- POST /newsletters - Publish an issue, authenticated via HTTP BASIC AUTH
"""

from fastapi import APIRouter, Depends, Header, HTTPException, status

from src.api.dependencies import get_newsletter_publisher, get_publishing_administrator
from src.api.models import ErrorResponse, PublishRequest, PublishResponse
from src.domain.exceptions import DeliveryError, PublishInProgress
from src.domain.models import AdministratorIdentity, NewsletterIssue
from src.domain.newsletters import NewsletterPublisher

router = APIRouter(tags=["newsletters"])


@router.post(
    "/newsletters",
    response_model=PublishResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Malformed body or idempotency key"},
        401: {"model": ErrorResponse, "description": "Authentication failed"},
        409: {
            "model": ErrorResponse,
            "description": "A request with the same idempotency key is still publishing",
        },
        502: {"model": ErrorResponse, "description": "No recipient could be reached"},
    },
    summary="Publish a newsletter issue",
    description="Deliver an issue to every confirmed subscriber. Repeating a request "
    "with the same Idempotency-Key header (or, without one, the same content) "
    "returns the original outcome without sending again.",
)
def publish_newsletter(
    body: PublishRequest,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    actor: AdministratorIdentity = Depends(get_publishing_administrator),
    publisher: NewsletterPublisher = Depends(get_newsletter_publisher),
) -> PublishResponse:
    """
    Publish a newsletter issue.

    - **title**: Issue title, used as the email subject
    - **content.text** / **content.html**: Issue body renditions

    Credentials (username:password) are provided via HTTP BASIC AUTH header.
    """
    issue = NewsletterIssue(
        title=body.title,
        text_content=body.content.text,
        html_content=body.content.html,
    )
    try:
        summary = publisher.publish(issue, actor, idempotency_key=idempotency_key)
    except DeliveryError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from None
    except PublishInProgress:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A publish with this idempotency key is still in progress",
        ) from None
    return PublishResponse.from_summary(summary)
