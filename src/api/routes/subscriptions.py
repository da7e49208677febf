"""
Subscription routes.

- POST /subscriptions - Subscribe with form-encoded name and email
- GET /subscriptions/confirm - Follow a confirmation link
"""

from fastapi import APIRouter, Depends, Form, HTTPException, Query, status

from src.api.dependencies import get_confirmation_service, get_subscription_service
from src.api.models import ErrorResponse, MessageResponse
from src.domain.exceptions import DeliveryError, TokenNotFound
from src.domain.subscriptions import ConfirmationService, SubscriptionService

router = APIRouter(tags=["subscriptions"])


@router.post(
    "/subscriptions",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid name or email"},
        500: {"model": ErrorResponse, "description": "Confirmation email could not be sent"},
    },
    summary="Subscribe to the newsletter",
    description="Submit a name and email address. A confirmation link is mailed "
    "to the address; the subscription is pending until the link is followed.",
)
def subscribe(
    name: str = Form(...),
    email: str = Form(...),
    service: SubscriptionService = Depends(get_subscription_service),
) -> MessageResponse:
    """
    Subscribe a visitor.

    Subscribing again with the same email re-sends a confirmation link.
    """
    try:
        service.subscribe(email, name)
    except DeliveryError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send a confirmation email",
        ) from None
    return MessageResponse(message="Confirmation email sent")


@router.get(
    "/subscriptions/confirm",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing subscription_token"},
        404: {"model": ErrorResponse, "description": "Unknown confirmation token"},
    },
    summary="Confirm a subscription",
)
def confirm(
    subscription_token: str = Query(..., min_length=1),
    service: ConfirmationService = Depends(get_confirmation_service),
) -> MessageResponse:
    """Confirm the subscriber bound to subscription_token. Safe to repeat."""
    try:
        service.confirm(subscription_token)
    except TokenNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Unknown confirmation token",
        ) from None
    return MessageResponse(message="Subscription confirmed")
