"""
Board invitation endpoints.

Endpoints:
- POST /boards/{board_id}/invite - Send an invitation (board managers)
- GET /boards/{board_id}/invitations - List invitations (board managers)
- POST /invitations/{invitation_id}/resend - Resend (board managers)
- DELETE /invitations/{invitation_id} - Revoke (board managers)
- GET /invite/{token} - Public lookup for the invite landing page
- POST /invite/{token}/accept - Accept as the signed-in user
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.deps import get_current_user, get_invitation_service
from src.api.schemas import (
    ErrorResponse,
    InvitationLookupResponse,
    InvitationResponse,
    SendInvitationRequest,
)
from src.components.invitations import InvitationService, InvitationView
from src.domain.entities import User
from src.domain.errors import (
    ConflictError,
    EmailNotConfiguredError,
    InvitationError,
    NotFoundError,
    PermissionDeniedError,
    PersistenceError,
    ProviderError,
    ValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid request or invitation state"},
    403: {"model": ErrorResponse, "description": "Not allowed to manage this board"},
    404: {"model": ErrorResponse, "description": "Not found"},
    502: {"model": ErrorResponse, "description": "Email provider failure"},
    503: {"model": ErrorResponse, "description": "Email service not configured"},
}


def to_http_error(e: InvitationError) -> HTTPException:
    """Map an invitation error onto an HTTP status."""
    if isinstance(e, (ValidationError, ConflictError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    if isinstance(e, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, EmailNotConfiguredError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    if isinstance(e, ProviderError):
        logger.error("Email provider failure: %s", e)
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="failed to send invitation email"
        )
    if isinstance(e, PersistenceError):
        logger.error("Invitation store failure: %s", e)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal error")


# --- Board manager endpoints ---


@router.post(
    "/boards/{board_id}/invite",
    response_model=InvitationResponse,
    responses=ERROR_RESPONSES,
    summary="Invite a collaborator by email",
)
def send_invitation(
    board_id: str,
    body: SendInvitationRequest,
    user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationResponse:
    try:
        invitation = service.send_invitation(board_id, body.email, body.role, inviter=user)
    except InvitationError as e:
        raise to_http_error(e) from e

    now = service.clock.now_unix()
    return InvitationResponse.from_view(InvitationView.from_invitation(invitation, now))


@router.get(
    "/boards/{board_id}/invitations",
    response_model=list[InvitationResponse],
    responses=ERROR_RESPONSES,
    summary="List a board's invitations",
)
def list_invitations(
    board_id: str,
    user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
) -> list[InvitationResponse]:
    try:
        views = service.list_invitations(board_id, actor=user)
    except InvitationError as e:
        raise to_http_error(e) from e
    return [InvitationResponse.from_view(v) for v in views]


@router.post(
    "/invitations/{invitation_id}/resend",
    response_model=InvitationResponse,
    responses=ERROR_RESPONSES,
    summary="Resend an invitation email",
)
def resend_invitation(
    invitation_id: str,
    user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationResponse:
    try:
        invitation = service.resend_invitation(invitation_id, actor=user)
    except InvitationError as e:
        raise to_http_error(e) from e

    now = service.clock.now_unix()
    return InvitationResponse.from_view(InvitationView.from_invitation(invitation, now))


@router.delete(
    "/invitations/{invitation_id}",
    responses=ERROR_RESPONSES,
    summary="Revoke an invitation",
)
def revoke_invitation(
    invitation_id: str,
    user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
) -> dict[str, Any]:
    try:
        service.revoke_invitation(invitation_id, actor=user)
    except InvitationError as e:
        raise to_http_error(e) from e
    return {}


# --- Invitee endpoints ---


@router.get(
    "/invite/{token}",
    response_model=InvitationLookupResponse,
    responses=ERROR_RESPONSES,
    summary="Look up an invitation by token",
)
def get_invitation_by_token(
    token: str,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationLookupResponse:
    try:
        summary = service.describe_invitation(token)
    except InvitationError as e:
        raise to_http_error(e) from e
    return InvitationLookupResponse.from_summary(summary)


@router.post(
    "/invite/{token}/accept",
    responses=ERROR_RESPONSES,
    summary="Accept an invitation",
)
def accept_invitation(
    token: str,
    user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
) -> dict[str, Any]:
    try:
        service.accept_invitation(token, user)
    except InvitationError as e:
        raise to_http_error(e) from e
    return {}
