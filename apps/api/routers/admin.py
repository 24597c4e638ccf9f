from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from apps.api.deps import get_current_user, get_review, get_settings, get_stats
from domain.models import AdmitCard, ApplicationStatus, ApplicationView, User
from services.review.workflow import ALL_STATUSES, ReviewWorkflow, compute_stats, filter_applications
from services.stats.aggregator import RealtimeStatsAggregator

router = APIRouter(prefix="/admin", tags=["admin"])


class ReviewStatsOut(BaseModel):
    total: int
    submitted: int
    under_review: int
    approved: int
    rejected: int


class ListingOut(BaseModel):
    applications: List[ApplicationView]
    stats: ReviewStatsOut


class TransitionIn(BaseModel):
    status: ApplicationStatus
    remarks: Optional[str] = None
    notify: bool = True


class NotificationOut(BaseModel):
    sent: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    rate_limited: bool = False


class TransitionOut(BaseModel):
    application: ApplicationView
    admit_card: Optional[AdmitCard] = None
    notification: Optional[NotificationOut] = None


class SignedUrlOut(BaseModel):
    url: str
    expires_in: int


class LiveStatsOut(BaseModel):
    total: int
    draft: int
    submitted: int
    under_review: int
    approved: int
    rejected: int
    today_count: int
    week_count: int
    last_updated: Optional[datetime] = None


@router.get("/applications", response_model=ListingOut)
def list_applications(
    q: str = "",
    status: str = ALL_STATUSES,
    user: User = Depends(get_current_user),  # noqa: B008
    review: ReviewWorkflow = Depends(get_review),  # noqa: B008
):
    """Stats are computed over everything; the filter only narrows the table."""
    apps = review.list_applications(user.id)
    return ListingOut(
        applications=filter_applications(apps, q, status),
        stats=ReviewStatsOut(**asdict(compute_stats(apps))),
    )


@router.get("/applications/{application_id}", response_model=ApplicationView)
def get_application(
    application_id: str,
    user: User = Depends(get_current_user),  # noqa: B008
    review: ReviewWorkflow = Depends(get_review),  # noqa: B008
):
    return review.get_application(user.id, application_id)


@router.post("/applications/{application_id}/status", response_model=TransitionOut)
def transition_status(
    application_id: str,
    payload: TransitionIn,
    user: User = Depends(get_current_user),  # noqa: B008
    review: ReviewWorkflow = Depends(get_review),  # noqa: B008
):
    result = review.transition_status(user.id, application_id, payload.status, payload.remarks)
    # the transition is committed; a failed email is reported, never rolled back
    outcome = review.notify(result) if payload.notify else None
    return TransitionOut(
        application=result.application,
        admit_card=result.admit_card,
        notification=NotificationOut(**asdict(outcome)) if outcome else None,
    )


@router.get("/applications/{application_id}/export", response_class=PlainTextResponse)
def export_application(
    application_id: str,
    user: User = Depends(get_current_user),  # noqa: B008
    review: ReviewWorkflow = Depends(get_review),  # noqa: B008
):
    text = review.export_summary(user.id, application_id)
    number = review.get_application(user.id, application_id).application_number
    return PlainTextResponse(
        text, headers={"Content-Disposition": f'attachment; filename="{number}_summary.txt"'}
    )


@router.get("/documents/{document_id}/url", response_model=SignedUrlOut)
def document_url(
    document_id: str,
    user: User = Depends(get_current_user),  # noqa: B008
    review: ReviewWorkflow = Depends(get_review),  # noqa: B008
    settings=Depends(get_settings),  # noqa: B008
):
    ttl = settings.SIGNED_URL_TTL_S
    return SignedUrlOut(url=review.document_url(user.id, document_id, ttl), expires_in=ttl)


def _live(stats: RealtimeStatsAggregator) -> LiveStatsOut:
    return LiveStatsOut(**asdict(stats.stats), last_updated=stats.last_updated)


@router.get("/stats/live", response_model=LiveStatsOut)
def live_stats(
    user: User = Depends(get_current_user),  # noqa: B008
    review: ReviewWorkflow = Depends(get_review),  # noqa: B008
    stats: RealtimeStatsAggregator = Depends(get_stats),  # noqa: B008
):
    review.authz.require_admin(user.id)
    return _live(stats)


@router.post("/stats/refresh", response_model=LiveStatsOut)
def refresh_stats(
    user: User = Depends(get_current_user),  # noqa: B008
    review: ReviewWorkflow = Depends(get_review),  # noqa: B008
    stats: RealtimeStatsAggregator = Depends(get_stats),  # noqa: B008
):
    review.authz.require_admin(user.id)
    stats.refetch()
    return _live(stats)
