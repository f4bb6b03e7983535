import pytest
import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.models.project import ProjectRole, ProjectVisibility
from tests.utils.test_utils import (
    create_test_user,
    create_test_project,
    create_test_feature,
    create_test_stage,
    add_test_member,
    auth_headers,
)


async def follow(client: httpx.AsyncClient, project_id: int, user) -> None:
    response = await client.post(f"/api/projects/{project_id}/follow", headers=auth_headers(user))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_create_feature_defaults_to_backlog(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)

    response = await async_client.post(
        f"/api/projects/{project.id}/features",
        json={"title": "Dark mode", "tags": ["ui", "ui", " theme "]},
        headers=auth_headers(owner),
    )

    assert response.status_code == 201
    feature = response.json()["data"]
    assert feature["stage"]["title"] == "Backlog"
    assert feature["status"] == "open"
    assert feature["priority"] == "medium"
    assert feature["vote_count"] == 0
    assert feature["tags"] == ["ui", "theme"]
    assert feature["author"]["id"] == owner.id


@pytest.mark.asyncio
async def test_create_feature_without_backlog_uses_first_stage(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    project = await create_test_project(db_session, owner, stage_titles=["Later", "Now"])

    response = await async_client.post(
        f"/api/projects/{project.id}/features", json={"title": "Export"}, headers=auth_headers(owner)
    )

    assert response.json()["data"]["stage"]["title"] == "Later"


@pytest.mark.asyncio
async def test_create_feature_no_stages(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    project = await create_test_project(db_session, owner, stage_titles=[])

    response = await async_client.post(
        f"/api/projects/{project.id}/features", json={"title": "Orphan"}, headers=auth_headers(owner)
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Backlog stage not found for this project"


@pytest.mark.asyncio
async def test_create_feature_stage_from_other_project(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    other = await create_test_project(db_session, owner)
    foreign_stage = await create_test_stage(db_session, other, "Elsewhere", 9)

    response = await async_client.post(
        f"/api/projects/{project.id}/features",
        json={"title": "Wrong stage", "stage_id": foreign_stage.id},
        headers=auth_headers(owner),
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_feature_requires_membership(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    stranger = await create_test_user(db_session)
    viewer = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    await add_test_member(db_session, project, viewer, ProjectRole.VIEWER)

    denied = await async_client.post(
        f"/api/projects/{project.id}/features", json={"title": "Nope"}, headers=auth_headers(stranger)
    )
    allowed = await async_client.post(
        f"/api/projects/{project.id}/features", json={"title": "Viewer idea"}, headers=auth_headers(viewer)
    )

    assert denied.status_code == 404
    assert allowed.status_code == 201


@pytest.mark.asyncio
async def test_new_feature_notifies_followers_except_author(
    async_client: httpx.AsyncClient, db_session: AsyncSession, mock_kafka
):
    owner = await create_test_user(db_session, name="Owner")
    fan = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    await follow(async_client, project.id, fan)
    await follow(async_client, project.id, owner)

    response = await async_client.post(
        f"/api/projects/{project.id}/features", json={"title": "Webhooks"}, headers=auth_headers(owner)
    )
    feature_id = response.json()["data"]["id"]

    fan_notes = (await async_client.get("/api/notifications", headers=auth_headers(fan))).json()["data"]
    owner_notes = (await async_client.get("/api/notifications", headers=auth_headers(owner))).json()["data"]

    assert fan_notes["unread_count"] == 1
    assert fan_notes["notifications"][0]["type"] == "new_feature"
    assert fan_notes["notifications"][0]["reference_id"] == feature_id
    assert fan_notes["notifications"][0]["message"] == "Owner suggested a new feature: Webhooks"
    assert owner_notes["unread_count"] == 0

    events = mock_kafka.events("feature_created")
    assert len(events) == 1
    assert events[0]["feature_id"] == feature_id
    assert events[0]["notify_emails"] == [fan.email]


@pytest.mark.asyncio
async def test_status_change_notifies_all_followers(
    async_client: httpx.AsyncClient, db_session: AsyncSession, mock_kafka
):
    owner = await create_test_user(db_session)
    fan = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    feature = await create_test_feature(db_session, project, owner, title="Sync")
    await follow(async_client, project.id, fan)
    await follow(async_client, project.id, owner)

    response = await async_client.put(
        f"/api/features/{feature.id}", json={"status": "in_progress"}, headers=auth_headers(owner)
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "in_progress"

    for user in (owner, fan):
        notes = (await async_client.get("/api/notifications", headers=auth_headers(user))).json()["data"]
        assert notes["notifications"][0]["type"] == "status_update"
        assert notes["notifications"][0]["message"] == 'Feature "Sync" changed from open to in_progress'

    events = mock_kafka.events("feature_status_changed")
    assert events[0]["status"] == "in_progress"
    assert sorted(events[0]["notify_emails"]) == sorted([owner.email, fan.email])


@pytest.mark.asyncio
async def test_update_without_status_change_is_quiet(
    async_client: httpx.AsyncClient, db_session: AsyncSession, mock_kafka
):
    owner = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    feature = await create_test_feature(db_session, project, owner)
    await follow(async_client, project.id, owner)

    response = await async_client.put(
        f"/api/features/{feature.id}", json={"title": "Renamed", "progress": 50}, headers=auth_headers(owner)
    )

    assert response.json()["data"]["title"] == "Renamed"
    assert response.json()["data"]["progress"] == 50
    assert mock_kafka.events("feature_status_changed") == []


@pytest.mark.asyncio
async def test_edit_feature_permissions(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    author = await create_test_user(db_session)
    editor = await create_test_user(db_session)
    admin = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    await add_test_member(db_session, project, author, ProjectRole.MEMBER)
    await add_test_member(db_session, project, editor, ProjectRole.EDITOR)
    await add_test_member(db_session, project, admin, ProjectRole.ADMIN)
    feature = await create_test_feature(db_session, project, author)

    by_editor = await async_client.put(f"/api/features/{feature.id}", json={"title": "X"}, headers=auth_headers(editor))
    by_author = await async_client.put(f"/api/features/{feature.id}", json={"title": "Y"}, headers=auth_headers(author))
    by_admin = await async_client.put(f"/api/features/{feature.id}", json={"title": "Z"}, headers=auth_headers(admin))

    assert by_editor.status_code == 404
    assert by_author.status_code == 200
    assert by_admin.status_code == 200

    deleted = await async_client.delete(f"/api/features/{feature.id}", headers=auth_headers(owner))
    assert deleted.status_code == 200
    assert (await async_client.get(f"/api/features/{feature.id}")).status_code == 404


@pytest.mark.asyncio
async def test_feature_in_private_project_hidden(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    stranger = await create_test_user(db_session)
    project = await create_test_project(db_session, owner, visibility=ProjectVisibility.PRIVATE)
    feature = await create_test_feature(db_session, project, owner)

    response = await async_client.get(f"/api/features/{feature.id}", headers=auth_headers(stranger))

    assert response.status_code == 404
    assert response.json()["message"] == "Feature not found"


@pytest.mark.asyncio
async def test_features_sorted_by_votes(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    voter = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    first = await create_test_feature(db_session, project, owner, title="Less popular")
    second = await create_test_feature(db_session, project, owner, title="More popular")

    await async_client.post(f"/api/features/{second.id}/vote", json={"value": 1}, headers=auth_headers(voter))
    await async_client.post(f"/api/features/{second.id}/vote", json={"value": 1}, headers=auth_headers(owner))
    await async_client.post(f"/api/features/{first.id}/vote", json={"value": -1}, headers=auth_headers(voter))

    response = await async_client.get(f"/api/projects/{project.id}/features")

    assert [f["title"] for f in response.json()["data"]] == ["More popular", "Less popular"]
    assert [f["vote_count"] for f in response.json()["data"]] == [2, -1]
