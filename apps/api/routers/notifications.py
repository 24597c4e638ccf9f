from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from apps.api.deps import get_current_user, get_notifier, get_review
from apps.api.ratelimit import limiter
from core.config import settings
from domain.models import User
from services.notifications.sender import StatusNotifier
from services.notifications.status_email import StatusEmailRequest
from services.review.workflow import ReviewWorkflow

router = APIRouter(prefix="/notifications", tags=["notifications"])


class SentOut(BaseModel):
    success: bool = True
    message_id: str


@router.post("/status-email", response_model=SentOut)
@limiter.limit(settings.NOTIFY_RATE_LIMIT)
def send_status_email(
    request: Request,
    payload: StatusEmailRequest,
    user: User = Depends(get_current_user),  # noqa: B008
    review: ReviewWorkflow = Depends(get_review),  # noqa: B008
    notifier: StatusNotifier = Depends(get_notifier),  # noqa: B008
):
    """Admin-only resend of a status email; provider errors surface as 429/502."""
    review.authz.require_admin(user.id)
    return SentOut(message_id=notifier.send(payload))
