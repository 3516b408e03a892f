"""
Workspace read-model composer.

Rebuilds the nested workspace view (workspace -> members -> projects ->
tasks/assignees/comments) from the normalized tables with a fixed number of
queries:

    workspace, members, projects, clients      one query each
    project members, tasks, comments           one query each (skipped when empty)
    every referenced user                      one batched query

Assembly is bottom-up (tasks, then projects, then the workspace) so each
attachment is a dictionary lookup. Users go through ``project_user`` before
they enter the map, so no credential ever reaches the view.

The queries do not share a transaction. A concurrent write between two steps
can leave a reference unresolved; such references come out as ``None``,
never as a dangling id object.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import NotFound
from app.models.client import Client
from app.models.project import Comment, Project, ProjectMember, Task
from app.models.user import User
from app.models.workspace import Workspace, WorkspaceMember
from app.services.auth import project_user

logger = logging.getLogger(__name__)


def _row(obj: Any) -> dict:
    return {column.name: getattr(obj, column.name) for column in obj.__table__.columns}


async def fetch_users_map(db: AsyncSession, user_ids: Iterable[Optional[str]]) -> dict[str, dict]:
    """Single batched lookup of every referenced user, already redacted."""
    ids = {uid for uid in user_ids if uid}
    if not ids:
        return {}
    result = await db.execute(select(User).where(User.id.in_(ids)))
    return {user.id: project_user(user) for user in result.scalars().all()}


async def _load_project_children(
    db: AsyncSession, project_ids: list[str]
) -> tuple[list[ProjectMember], list[Task], list[Comment]]:
    if not project_ids:
        return [], [], []

    result = await db.execute(
        select(ProjectMember)
        .where(ProjectMember.project_id.in_(project_ids))
        .order_by(ProjectMember.created_at)
    )
    project_members = list(result.scalars().all())

    result = await db.execute(
        select(Task).where(Task.project_id.in_(project_ids)).order_by(Task.created_at)
    )
    tasks = list(result.scalars().all())

    task_ids = [task.id for task in tasks]
    comments: list[Comment] = []
    if task_ids:
        result = await db.execute(
            select(Comment).where(Comment.task_id.in_(task_ids)).order_by(Comment.created_at)
        )
        comments = list(result.scalars().all())

    return project_members, tasks, comments


def _project_user_ids(
    projects: list[Project],
    project_members: list[ProjectMember],
    tasks: list[Task],
    comments: list[Comment],
) -> set[str]:
    ids: set[str] = set()
    ids.update(p.team_lead for p in projects if p.team_lead)
    ids.update(m.user_id for m in project_members)
    ids.update(t.assignee_id for t in tasks if t.assignee_id)
    ids.update(c.user_id for c in comments)
    return ids


def _assemble_projects(
    projects: list[Project],
    project_members: list[ProjectMember],
    tasks: list[Task],
    comments: list[Comment],
    users: dict[str, dict],
    clients: dict[str, dict],
) -> list[dict]:
    comments_by_task: dict[str, list[dict]] = defaultdict(list)
    for comment in comments:
        item = _row(comment)
        item["user"] = users.get(comment.user_id)
        comments_by_task[comment.task_id].append(item)

    tasks_by_project: dict[str, list[dict]] = defaultdict(list)
    for task in tasks:
        item = _row(task)
        item["assignee"] = users.get(task.assignee_id) if task.assignee_id else None
        item["comments"] = comments_by_task.get(task.id, [])
        tasks_by_project[task.project_id].append(item)

    members_by_project: dict[str, list[dict]] = defaultdict(list)
    for member in project_members:
        item = _row(member)
        item["user"] = users.get(member.user_id)
        members_by_project[member.project_id].append(item)

    assembled = []
    for project in projects:
        item = _row(project)
        item["lead"] = users.get(project.team_lead) if project.team_lead else None
        item["client"] = clients.get(project.client_id) if project.client_id else None
        item["tasks"] = tasks_by_project.get(project.id, [])
        item["members"] = members_by_project.get(project.id, [])
        assembled.append(item)
    return assembled


async def compose_workspace(
    db: AsyncSession,
    workspace_id: str,
    project_ids: Optional[list[str]] = None,
) -> dict:
    """
    Build the WorkspaceView of ``workspace_id``.

    ``project_ids`` restricts the projects included in the view (``None``
    keeps them all). Raises ``NotFound`` when the workspace does not exist;
    partial views are never returned.
    """
    result = await db.execute(select(Workspace).where(Workspace.id == workspace_id))
    workspace = result.scalar_one_or_none()
    if workspace is None:
        raise NotFound("Workspace not found")

    result = await db.execute(
        select(WorkspaceMember)
        .where(WorkspaceMember.workspace_id == workspace_id)
        .order_by(WorkspaceMember.created_at)
    )
    members = list(result.scalars().all())

    projects: list[Project] = []
    if project_ids is None or project_ids:
        query = select(Project).where(Project.workspace_id == workspace_id)
        if project_ids is not None:
            query = query.where(Project.id.in_(project_ids))
        result = await db.execute(query.order_by(Project.created_at))
        projects = list(result.scalars().all())

    result = await db.execute(
        select(Client).where(Client.workspace_id == workspace_id).order_by(Client.created_at)
    )
    clients = {client.id: _row(client) for client in result.scalars().all()}

    project_members, tasks, comments = await _load_project_children(db, [p.id for p in projects])

    user_ids = {workspace.owner_id}
    user_ids.update(m.user_id for m in members)
    user_ids.update(_project_user_ids(projects, project_members, tasks, comments))
    users = await fetch_users_map(db, user_ids)

    assembled_projects = _assemble_projects(projects, project_members, tasks, comments, users, clients)

    member_items = []
    for member in members:
        item = _row(member)
        item["user"] = users.get(member.user_id)
        member_items.append(item)

    view = _row(workspace)
    view["owner"] = users.get(workspace.owner_id)
    view["members"] = member_items
    view["projects"] = assembled_projects
    view["clients"] = list(clients.values())
    logger.debug(
        "Composed workspace %s: %d members, %d projects, %d tasks, %d users",
        workspace_id, len(member_items), len(assembled_projects), len(tasks), len(users),
    )
    return view


async def compose_project(db: AsyncSession, project_id: str) -> dict:
    """Single-project view built with the same batched assembly."""
    result = await db.execute(select(Project).where(Project.id == project_id))
    project = result.scalar_one_or_none()
    if project is None:
        raise NotFound("Project not found")

    clients: dict[str, dict] = {}
    if project.client_id:
        result = await db.execute(select(Client).where(Client.id == project.client_id))
        client = result.scalar_one_or_none()
        if client is not None:
            clients[client.id] = _row(client)

    project_members, tasks, comments = await _load_project_children(db, [project.id])
    users = await fetch_users_map(
        db, _project_user_ids([project], project_members, tasks, comments)
    )
    return _assemble_projects([project], project_members, tasks, comments, users, clients)[0]
