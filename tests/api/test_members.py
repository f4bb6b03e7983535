from datetime import timedelta

import pytest
import httpx
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from roadmap.models.project import ProjectInvite, ProjectRole, ProjectVisibility
from tests.utils.test_utils import (
    create_test_user,
    create_test_project,
    create_test_invite,
    add_test_member,
    auth_headers,
)


@pytest.mark.asyncio
async def test_invite_and_accept_grants_access(
    async_client: httpx.AsyncClient, db_session: AsyncSession, mock_email, mock_kafka
):
    """Приватный проект становится виден после принятия приглашения"""
    owner = await create_test_user(db_session, name="Owner")
    guest = await create_test_user(db_session, name="Guest")
    project = await create_test_project(db_session, owner, title="Secret", visibility=ProjectVisibility.PRIVATE)

    assert (await async_client.get(f"/api/projects/{project.id}", headers=auth_headers(guest))).status_code == 404

    invited = await async_client.post(
        f"/api/projects/{project.id}/invites",
        json={"email": guest.email.upper(), "role": "viewer"},
        headers=auth_headers(owner),
    )
    assert invited.status_code == 201
    invite = invited.json()["data"]
    assert invite["email"] == guest.email
    assert invite["role"] == "viewer"
    assert len(invite["token"]) == 64
    assert mock_email.call_args.kwargs["user_email"] == guest.email

    accepted = await async_client.post(f"/api/invites/{invite['token']}/accept", headers=auth_headers(guest))
    assert accepted.status_code == 200
    member = accepted.json()["data"]
    assert member["role"] == "viewer"
    assert member["user_id"] == guest.id

    detail = await async_client.get(f"/api/projects/{project.id}", headers=auth_headers(guest))
    assert detail.status_code == 200
    assert detail.json()["data"]["user_role"] == "viewer"

    events = mock_kafka.events("member_joined")
    assert events == [
        {
            "project_id": project.id,
            "project_title": "Secret",
            "owner_email": owner.email,
            "user_name": "Guest",
            "role": "viewer",
        }
    ]


@pytest.mark.asyncio
async def test_invite_kept_when_email_queue_is_down(
    async_client: httpx.AsyncClient, db_session: AsyncSession, database, mock_email
):
    """Недоступный брокер писем не откатывает созданное приглашение"""
    owner = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    mock_email.side_effect = ConnectionError("broker unreachable")

    response = await async_client.post(
        f"/api/projects/{project.id}/invites",
        json={"email": "guest@example.com", "role": "member"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 201
    assert response.json()["data"]["email"] == "guest@example.com"
    mock_email.assert_called_once()
    async with database.session() as session:
        invites = (
            await session.execute(select(ProjectInvite).where(ProjectInvite.project_id == project.id))
        ).scalars().all()
    assert [invite.email for invite in invites] == ["guest@example.com"]


@pytest.mark.asyncio
async def test_accept_invite_twice(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    guest = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    invite = await create_test_invite(db_session, project, guest.email, owner)

    first = await async_client.post(f"/api/invites/{invite.token}/accept", headers=auth_headers(guest))
    second = await async_client.post(f"/api/invites/{invite.token}/accept", headers=auth_headers(guest))

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json()["message"] == "Invalid or expired invite"


@pytest.mark.asyncio
async def test_accept_expired_invite(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    guest = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    invite = await create_test_invite(db_session, project, guest.email, owner, expires_in=timedelta(seconds=-1))

    response = await async_client.post(f"/api/invites/{invite.token}/accept", headers=auth_headers(guest))

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired invite"


@pytest.mark.asyncio
async def test_accept_invite_for_other_email(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    guest = await create_test_user(db_session)
    intruder = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    invite = await create_test_invite(db_session, project, guest.email, owner)

    response = await async_client.post(f"/api/invites/{invite.token}/accept", headers=auth_headers(intruder))
    unknown = await async_client.post("/api/invites/deadbeef/accept", headers=auth_headers(intruder))

    assert response.status_code == 400
    assert response.json()["message"] == unknown.json()["message"] == "Invalid or expired invite"


@pytest.mark.asyncio
async def test_invite_existing_member_conflicts(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    member = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    await add_test_member(db_session, project, member)

    for email in (member.email, owner.email):
        response = await async_client.post(
            f"/api/projects/{project.id}/invites", json={"email": email}, headers=auth_headers(owner)
        )
        assert response.status_code == 409
        assert response.json()["message"] == "User is already a project member"


@pytest.mark.asyncio
async def test_invite_rejects_owner_role(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)

    response = await async_client.post(
        f"/api/projects/{project.id}/invites",
        json={"email": "someone@example.com", "role": "owner"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_viewer_cannot_invite(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    viewer = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    await add_test_member(db_session, project, viewer, ProjectRole.VIEWER)

    response = await async_client.post(
        f"/api/projects/{project.id}/invites", json={"email": "friend@example.com"}, headers=auth_headers(viewer)
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_members(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session, name="Owner")
    member = await create_test_user(db_session, name="Member")
    project = await create_test_project(db_session, owner)
    await add_test_member(db_session, project, member, ProjectRole.EDITOR)

    response = await async_client.get(f"/api/projects/{project.id}/members")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["owner"]["name"] == "Owner"
    assert [(m["user"]["name"], m["role"]) for m in data["members"]] == [("Member", "editor")]


@pytest.mark.asyncio
async def test_update_member_role(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    admin = await create_test_user(db_session)
    member_user = await create_test_user(db_session)
    editor = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    await add_test_member(db_session, project, admin, ProjectRole.ADMIN)
    await add_test_member(db_session, project, editor, ProjectRole.EDITOR)
    member = await add_test_member(db_session, project, member_user, ProjectRole.MEMBER)

    forbidden = await async_client.put(
        f"/api/projects/{project.id}/members/{member.id}", json={"role": "admin"}, headers=auth_headers(editor)
    )
    assert forbidden.status_code == 403
    assert forbidden.json()["message"] == "Insufficient permissions"

    response = await async_client.put(
        f"/api/projects/{project.id}/members/{member.id}", json={"role": "editor"}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    assert response.json()["data"]["role"] == "editor"

    activity = (await async_client.get(f"/api/projects/{project.id}/activity")).json()["data"]["activities"]
    assert activity[0]["action"] == "MEMBER_ROLE_UPDATED"
    assert activity[0]["metadata"]["old_role"] == "member"
    assert activity[0]["metadata"]["new_role"] == "editor"


@pytest.mark.asyncio
async def test_remove_member(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    admin_user = await create_test_user(db_session)
    member_user = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    admin = await add_test_member(db_session, project, admin_user, ProjectRole.ADMIN)
    member = await add_test_member(db_session, project, member_user, ProjectRole.MEMBER)

    self_removal = await async_client.delete(
        f"/api/projects/{project.id}/members/{admin.id}", headers=auth_headers(admin_user)
    )
    assert self_removal.status_code == 400
    assert self_removal.json()["message"] == "Cannot remove yourself from project"

    by_member = await async_client.delete(
        f"/api/projects/{project.id}/members/{admin.id}", headers=auth_headers(member_user)
    )
    assert by_member.status_code == 403

    response = await async_client.delete(
        f"/api/projects/{project.id}/members/{member.id}", headers=auth_headers(admin_user)
    )
    assert response.status_code == 200

    members = (await async_client.get(f"/api/projects/{project.id}/members")).json()["data"]["members"]
    assert [m["id"] for m in members] == [admin.id]

    missing = await async_client.delete(
        f"/api/projects/{project.id}/members/{member.id}", headers=auth_headers(admin_user)
    )
    assert missing.status_code == 404
