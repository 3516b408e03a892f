"""Workspace read-model composer: shape, redaction and query batching."""

from __future__ import annotations

import pytest

from app.errors import NotFound
from app.services.workspace_view import compose_project, compose_workspace, fetch_users_map
from conftest import (
    add_member,
    add_project_member,
    make_client,
    make_comment,
    make_project,
    make_task,
    make_user,
    make_workspace,
)


def _all_users(view: dict):
    yield view["owner"]
    for member in view["members"]:
        yield member["user"]
    for project in view["projects"]:
        yield project["lead"]
        for member in project["members"]:
            yield member["user"]
        for task in project["tasks"]:
            yield task["assignee"]
            for comment in task["comments"]:
                yield comment["user"]


async def _seed(db, n_users: int):
    owner = await make_user(db, "owner@example.com", password="owner-pass")
    ws = await make_workspace(db, owner)
    users = [await make_user(db, f"user{i}@example.com") for i in range(n_users)]
    for user in users[: n_users // 2]:
        await add_member(db, ws, user)
    await make_client(db, ws)
    alpha = await make_project(db, ws, name="Alpha", team_lead=users[0])
    beta = await make_project(db, ws, name="Beta")
    for i, user in enumerate(users):
        project = alpha if i % 2 == 0 else beta
        await add_project_member(db, project, user)
        task = await make_task(db, project, title=f"Task {i}", assignee=user)
        await make_comment(db, task, owner)
    return ws


@pytest.mark.asyncio
class TestComposeWorkspace:
    async def test_missing_workspace(self, db):
        with pytest.raises(NotFound):
            await compose_workspace(db, "ws_missing")

    async def test_nested_shape(self, db):
        owner = await make_user(db, "owner@example.com")
        lead = await make_user(db, "lead@example.com")
        dev = await make_user(db, "dev@example.com")
        ws = await make_workspace(db, owner)
        await add_member(db, ws, dev)
        project = await make_project(db, ws, team_lead=lead)
        await add_project_member(db, project, dev)
        task = await make_task(db, project, title="Ship it", assignee=dev)
        await make_task(db, project, title="Unassigned")
        await make_comment(db, task, lead)

        view = await compose_workspace(db, ws.id)

        assert view["id"] == ws.id
        assert view["owner"]["email"] == "owner@example.com"
        assert {m["user"]["email"] for m in view["members"]} == {"owner@example.com", "dev@example.com"}
        assert len(view["projects"]) == 1
        composed = view["projects"][0]
        assert composed["lead"]["id"] == lead.id
        assert [m["user"]["id"] for m in composed["members"]] == [dev.id]
        tasks = {t["title"]: t for t in composed["tasks"]}
        assert tasks["Ship it"]["assignee"]["id"] == dev.id
        assert tasks["Unassigned"]["assignee"] is None
        assert tasks["Ship it"]["comments"][0]["user"]["id"] == lead.id
        assert tasks["Unassigned"]["comments"] == []

    async def test_no_password_anywhere(self, db):
        ws = await _seed(db, 4)
        view = await compose_workspace(db, ws.id)
        users = [u for u in _all_users(view) if u is not None]
        assert users
        for user in users:
            assert "password_hash" not in user

    async def test_dangling_reference_resolves_to_none(self, db):
        owner = await make_user(db, "owner@example.com")
        ws = await make_workspace(db, owner)
        project = await make_project(db, ws)
        task = await make_task(db, project)
        task.assignee_id = "user_deleted"
        await db.commit()

        view = await compose_workspace(db, ws.id)
        assert view["projects"][0]["tasks"][0]["assignee"] is None

    async def test_workspace_without_projects_skips_child_queries(self, db, query_counter):
        owner = await make_user(db, "owner@example.com")
        ws = await make_workspace(db, owner)
        query_counter.reset()

        view = await compose_workspace(db, ws.id)

        assert view["projects"] == []
        # workspace, members, projects, clients, users
        assert len(query_counter.selects) == 5

    async def test_query_count_independent_of_user_count(self, db, session_factory, query_counter):
        small = await _seed(db, 2)
        async with session_factory() as session:
            query_counter.reset()
            await compose_workspace(session, small.id)
            small_count = len(query_counter.selects)

        async with session_factory() as session:
            # a second, larger tenant in the same database
            owner = await make_user(session, "big-owner@example.com")
            big = await make_workspace(session, owner, slug="big")
            users = [await make_user(session, f"big{i}@example.com") for i in range(12)]
            project = await make_project(session, big)
            for user in users:
                await add_member(session, big, user)
                await add_project_member(session, project, user)
                await make_task(session, project, assignee=user)

        async with session_factory() as session:
            query_counter.reset()
            view = await compose_workspace(session, big.id)
            big_selects = list(query_counter.selects)

        assert len(view["members"]) == 13
        assert len(big_selects) == small_count
        assert sum(1 for s in big_selects if "FROM users" in s) == 1

    async def test_project_filter(self, db):
        owner = await make_user(db, "owner@example.com")
        ws = await make_workspace(db, owner)
        keep = await make_project(db, ws, name="Keep")
        await make_project(db, ws, name="Hide")

        view = await compose_workspace(db, ws.id, project_ids=[keep.id])
        assert [p["name"] for p in view["projects"]] == ["Keep"]

        view = await compose_workspace(db, ws.id, project_ids=[])
        assert view["projects"] == []

    async def test_clients_attached(self, db):
        owner = await make_user(db, "owner@example.com")
        ws = await make_workspace(db, owner)
        await make_client(db, ws, name="Initech")
        view = await compose_workspace(db, ws.id)
        assert [c["name"] for c in view["clients"]] == ["Initech"]


@pytest.mark.asyncio
class TestComposeProject:
    async def test_single_project(self, db):
        owner = await make_user(db, "owner@example.com")
        ws = await make_workspace(db, owner)
        project = await make_project(db, ws, team_lead=owner)
        await make_task(db, project, assignee=owner)

        view = await compose_project(db, project.id)
        assert view["lead"]["id"] == owner.id
        assert view["tasks"][0]["assignee"]["id"] == owner.id
        assert "password_hash" not in view["lead"]

    async def test_missing_project(self, db):
        with pytest.raises(NotFound):
            await compose_project(db, "proj_missing")


@pytest.mark.asyncio
async def test_fetch_users_map_ignores_empty_ids(db, query_counter):
    query_counter.reset()
    assert await fetch_users_map(db, [None, ""]) == {}
    assert query_counter.selects == []
