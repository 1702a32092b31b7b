"""
Invitations component - board invitation lifecycle (send, resend, accept, revoke, sweep).
"""

from .component import (
    InvitationService,
    merge_membership,
)
from .models import (
    EMAIL_REGEX,
    CleanupResult,
    InvitationSummary,
    InvitationView,
    validate_email,
)
from .ports import (
    BoardMemberRepoPort,
    BoardRepoPort,
    InvitationMailerPort,
    InvitationRepoPort,
    TimePort,
    TokenGeneratorPort,
    UserRepoPort,
)

__all__ = [
    # Service
    "InvitationService",
    "merge_membership",
    # Models
    "EMAIL_REGEX",
    "CleanupResult",
    "InvitationSummary",
    "InvitationView",
    "validate_email",
    # Ports
    "BoardMemberRepoPort",
    "BoardRepoPort",
    "InvitationMailerPort",
    "InvitationRepoPort",
    "TimePort",
    "TokenGeneratorPort",
    "UserRepoPort",
]
