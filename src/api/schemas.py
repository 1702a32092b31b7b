from dataclasses import asdict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.components.invitations.models import InvitationSummary, InvitationView


class CamelModel(BaseModel):
    # Wire format is camelCase; Python side keeps snake_case names.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests ---
class SendInvitationRequest(CamelModel):
    email: str
    # Validated by the service so an unknown role is a 400, not a 422
    role: str | None = None


# --- Responses ---
class InvitationResponse(CamelModel):
    id: str
    board_id: str
    email: str
    role: str
    created_by: str
    created_at: int
    expires_at: int
    used_at: int | None = None
    used_by: str | None = None
    last_sent_at: int | None = None
    status: str
    resend_cooldown_seconds: int

    @classmethod
    def from_view(cls, view: InvitationView) -> "InvitationResponse":
        return cls(**asdict(view))


class InvitationLookupResponse(CamelModel):
    board_title: str
    email: str
    role: str
    board_id: str
    valid: bool = True

    @classmethod
    def from_summary(cls, summary: InvitationSummary) -> "InvitationLookupResponse":
        return cls(**asdict(summary))


class ErrorResponse(BaseModel):
    detail: str

