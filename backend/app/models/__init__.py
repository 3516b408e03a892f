from app.models.user import User
from app.models.workspace import Workspace, WorkspaceMember
from app.models.client import Client
from app.models.project import Project, ProjectMember, Task, Comment
from app.models.onboarding import Invitation, ClientIntake

__all__ = [
    "User",
    "Workspace", "WorkspaceMember",
    "Client",
    "Project", "ProjectMember", "Task", "Comment",
    "Invitation", "ClientIntake",
]
