from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from core.config import settings
from domain.models import User
from services.admissions.service import AdmissionService
from services.identity import IdentityService
from services.llm.gateway_client import ChatGatewayClient
from services.notifications.sender import StatusNotifier
from services.persistence.platform import DataPlatform
from services.review.workflow import ReviewWorkflow
from services.stats.aggregator import RealtimeStatsAggregator

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


def get_settings():
    """Provides application settings/config globally."""
    return settings


def get_platform(request: Request) -> DataPlatform:
    return request.app.state.platform


def get_identity(request: Request) -> IdentityService:
    return request.app.state.identity


def get_admissions(request: Request) -> AdmissionService:
    return request.app.state.admissions


def get_review(request: Request) -> ReviewWorkflow:
    return request.app.state.review


def get_stats(request: Request) -> RealtimeStatsAggregator:
    return request.app.state.stats


def get_notifier(request: Request) -> StatusNotifier:
    return request.app.state.notifier


def get_chat_client(request: Request) -> ChatGatewayClient:
    return request.app.state.chat


def get_token(token: str = Depends(oauth2_scheme)) -> str:
    return token


def get_current_user(
    token: str = Depends(oauth2_scheme), identity: IdentityService = Depends(get_identity)
) -> User:
    """Resolves the bearer token to a live account (401 otherwise)."""
    return identity.current_user(token)
