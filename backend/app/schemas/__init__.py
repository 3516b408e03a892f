from app.schemas.auth import LoginRequest, LoginResponse, UserPublic, MeResponse
from app.schemas.workspace import (
    WorkspaceCreate, WorkspaceUpdate, WorkspaceMemberAdd, WorkspaceSummary,
    WorkspaceView, ProjectView, TaskView,
)
from app.schemas.onboarding import (
    InvitationCreate, InvitationIssued, InvitationLookup, InvitationAccept,
    InvitationAccepted, InvitationDecline, InvitationSummary,
    IntakeCreate, IntakePublicCreate, IntakeCreated, IntakeLookup,
    IntakeSubmit, IntakeSubmitted, IntakeSummary,
)
