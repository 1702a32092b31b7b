from pydantic import BaseModel, Field


class ServerRules(BaseModel):
    server_root: str = "http://localhost:8000"


class InvitationRules(BaseModel):
    # 0 disables the background expiry sweeper
    sweep_interval_seconds: int = Field(default=3600, ge=0)


class PostmarkRules(BaseModel):
    api_token: str = ""
    timeout_seconds: float = 30.0


class SmtpRules(BaseModel):
    server: str = ""
    port: int = 587
    username: str = ""
    password: str = ""
    use_tls: bool = False
    timeout_seconds: float = 30.0


class EmailRules(BaseModel):
    from_email: str = ""
    from_name: str = ""
    templates_path: str = "./templates/email"
    message_tag: str = "board-invitation"
    postmark: PostmarkRules = Field(default_factory=PostmarkRules)
    smtp: SmtpRules = Field(default_factory=SmtpRules)


class Rules(BaseModel):
    server: ServerRules = Field(default_factory=ServerRules)
    invitations: InvitationRules = Field(default_factory=InvitationRules)
    email: EmailRules = Field(default_factory=EmailRules)
