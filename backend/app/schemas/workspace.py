from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from app.schemas.auth import UserPublic


class WorkspaceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None


class WorkspaceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    slug: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    image_url: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None


class WorkspaceMemberAdd(BaseModel):
    user_id: str
    role: str = Field(default="USER", pattern="^(ADMIN|USER)$")
    message: Optional[str] = None


class WorkspaceSummary(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    owner_id: str
    image_url: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    member_count: int = 0


# ---------------------------------------------------------------------------
# Composed read model
# ---------------------------------------------------------------------------

class CommentView(BaseModel):
    id: str
    task_id: str
    user_id: str
    content: str
    created_at: Optional[datetime] = None
    user: Optional[UserPublic] = None


class TaskView(BaseModel):
    id: str
    project_id: str
    title: str
    description: Optional[str] = None
    status: str
    type: str
    priority: str
    assignee_id: Optional[str] = None
    due_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    assignee: Optional[UserPublic] = None
    comments: List[CommentView] = []


class ProjectMemberView(BaseModel):
    id: str
    project_id: str
    user_id: str
    created_at: Optional[datetime] = None
    user: Optional[UserPublic] = None


class ClientView(BaseModel):
    id: str
    workspace_id: str
    name: str
    company: Optional[str] = None
    contact_name: Optional[str] = None
    contact_role: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    industry: Optional[str] = None
    service_type: Optional[str] = None
    portal_workspace_id: Optional[str] = None
    business_details: Optional[Dict[str, Any]] = None
    service_responses: Optional[Dict[str, Any]] = None
    uploaded_files: Optional[List[Any]] = None
    status: str
    details: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProjectView(BaseModel):
    id: str
    workspace_id: str
    client_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    priority: str
    status: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    team_lead: Optional[str] = None
    progress: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    lead: Optional[UserPublic] = None
    client: Optional[ClientView] = None
    tasks: List[TaskView] = []
    members: List[ProjectMemberView] = []


class WorkspaceMemberView(BaseModel):
    id: str
    workspace_id: str
    user_id: str
    role: str
    message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[UserPublic] = None


class WorkspaceView(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None
    owner_id: str
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    owner: Optional[UserPublic] = None
    members: List[WorkspaceMemberView] = []
    projects: List[ProjectView] = []
    clients: List[ClientView] = []
