from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
InvitationRole = Literal["viewer", "commenter", "editor", "admin"]
INVITATION_ROLES: tuple[str, ...] = ("viewer", "commenter", "editor", "admin")
DEFAULT_ROLE: InvitationRole = "viewer"


def new_id() -> str:
    return uuid4().hex


# --- Users & Boards ---

class User(BaseModel):
    id: str = Field(default_factory=new_id)
    username: str
    email: str
    first_name: str = ""
    last_name: str = ""

    @property
    def display_name(self) -> str:
        """Full name when known, otherwise the username."""
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.username


class Board(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    created_by: str


class BoardMember(BaseModel):
    board_id: str
    user_id: str
    scheme_admin: bool = False
    scheme_editor: bool = False
    scheme_commenter: bool = False
    scheme_viewer: bool = False


# --- Invitations ---

class BoardInvitation(BaseModel):
    # Timestamps are epoch seconds; optional ones stay None until they happen.
    id: str = Field(default_factory=new_id)
    board_id: str
    email: str
    token: str
    role: str = DEFAULT_ROLE
    created_by: str
    created_at: int
    expires_at: int
    used_at: int | None = None
    used_by: str | None = None
    last_sent_at: int | None = None
