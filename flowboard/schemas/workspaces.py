from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from flowboard.models.enums import Role


class WorkspaceCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str | None = Field(default=None, max_length=255)
    description: str | None = None


class WorkspaceCreatedResponse(BaseModel):
    id: str


class WorkspaceUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = Field(default=None, max_length=255)
    description: str | None = None
    logo_url: str | None = Field(default=None, alias="logoUrl")

    model_config = ConfigDict(populate_by_name=True)


class WorkspaceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    name: str
    slug: str
    description: str | None = None
    logo_url: str | None = Field(default=None, alias="logoUrl")
    created_by: str | None = Field(default=None, alias="createdBy")


class WorkspaceListResponse(BaseModel):
    workspace: WorkspaceResponse
    role: Role


class WorkspaceMemberResponse(BaseModel):
    user_id: str = Field(alias="userId")
    email: str
    name: str | None = None
    role: Role

    model_config = ConfigDict(populate_by_name=True)


class UpdateWorkspaceMemberRequest(BaseModel):
    role: Role


class InvitationCreateRequest(BaseModel):
    email: EmailStr
    workspace_id: str = Field(alias="workspaceId")
    workspace_name: str = Field(default="", alias="workspaceName")
    role: Role = Role.MEMBER
    inviter_name: str = Field(default="", alias="inviterName")

    model_config = ConfigDict(populate_by_name=True)


class InvitationResponse(BaseModel):
    id: str
    email: str
    role: Role
    token: str
    workspace_id: str = Field(alias="workspaceId")
    invited_by: str | None = Field(default=None, alias="invitedBy")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    expires_at: datetime = Field(alias="expiresAt")
    accepted_at: datetime | None = Field(default=None, alias="acceptedAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class SendInvitationResponse(BaseModel):
    success: bool = True
    invitation: InvitationResponse
    invite_url: str = Field(alias="inviteUrl")
    email_sent: bool = Field(alias="emailSent")
    delivery_status: str | None = Field(default=None, alias="deliveryStatus")

    model_config = ConfigDict(populate_by_name=True)


class InviteAcceptRequest(BaseModel):
    token: str | None = None


class InviteAcceptResponse(BaseModel):
    status: str
    message: str
    error_kind: str | None = Field(default=None, alias="errorKind")
    workspace_id: str | None = Field(default=None, alias="workspaceId")
    workspace_name: str | None = Field(default=None, alias="workspaceName")
    redirect_to: str | None = Field(default=None, alias="redirectTo")
    redirect_after_seconds: int | None = Field(default=None, alias="redirectAfterSeconds")
    login_url: str | None = Field(default=None, alias="loginUrl")

    model_config = ConfigDict(populate_by_name=True)
