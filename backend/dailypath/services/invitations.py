# dailypath/services/invitations.py
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from dailypath.core.config import settings
from dailypath.core.errors import ConflictError, ForbiddenError, ValidationError
from dailypath.db import crud
from dailypath.models.auth import InvitationCreate, InvitationInDB, InvitationOut
from dailypath.models.user import CurrentUser

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def registration_url(token: str) -> str:
    return f"{settings.APP_BASE_URL.rstrip('/')}/register?token={token}"


async def create_invitation(actor: CurrentUser, data: InvitationCreate) -> InvitationOut:
    if not (actor.is_manager or actor.is_admin):
        raise ForbiddenError("You do not have permission to send invitations")

    email = data.email.lower()
    if await crud.get_user_by_email(email):
        raise ConflictError("User with this email already exists")
    now = datetime.now(timezone.utc)
    if await crud.get_pending_invitation(email, now):
        raise ConflictError("An invitation for this email already exists")

    invitation = await crud.create_invitation({
        "email": email,
        "token": secrets.token_hex(TOKEN_BYTES),
        "app_role": data.app_role,
        "department_id": data.department_id,
        "invited_by": actor.id,
        "expires_at": now + timedelta(days=settings.INVITATION_TTL_DAYS),
    })
    # Email delivery belongs to the auth provider / mailer; the link is logged for operators
    logger.info(f"Invitation {invitation.id} created for {email} by {actor.email}: {registration_url(invitation.token)}")

    return InvitationOut(
        id=invitation.id,
        email=invitation.email,
        expires_at=invitation.expires_at,
        token=invitation.token if settings.DEBUG else None,
    )


async def get_valid_invitation(token: str, email: str, now: Optional[datetime] = None) -> InvitationInDB:
    """Pending, unexpired invitation issued for `email`; ValidationError otherwise."""
    now = now or datetime.now(timezone.utc)
    invitation = await crud.get_invitation_by_token(token)
    if invitation is None or invitation.accepted_at is not None:
        raise ValidationError("Invalid or already used invitation", field_errors={"token": ["Invalid invitation token"]})
    expires_at = invitation.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if expires_at <= now:
        raise ValidationError("Invitation has expired", field_errors={"token": ["Invitation has expired"]})
    if invitation.email.lower() != email.lower():
        raise ValidationError(
            "Email does not match the invitation",
            field_errors={"email": ["Email does not match the invitation"]},
        )
    return invitation
