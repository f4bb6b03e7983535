import pytest
import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.models.project import ProjectRole, ProjectVisibility
from tests.utils.test_utils import (
    create_test_user,
    create_test_project,
    create_test_feature,
    add_test_member,
    auth_headers,
)


@pytest.mark.asyncio
async def test_create_project_with_default_stages(async_client: httpx.AsyncClient, db_session: AsyncSession):
    """Проект без этапов получает стандартный набор"""
    user = await create_test_user(db_session)

    response = await async_client.post(
        "/api/projects",
        json={"title": "My Cool Roadmap!", "description": "Public plans", "category": "saas"},
        headers=auth_headers(user),
    )

    assert response.status_code == 201
    project = response.json()["data"]
    assert project["slug"] == "my-cool-roadmap"
    assert project["owner_id"] == user.id
    assert project["owner"]["id"] == user.id
    assert project["visibility"] == "public"
    assert project["logo_url"]

    stages = await async_client.get(f"/api/projects/{project['id']}/stages")
    assert [s["title"] for s in stages.json()["data"]] == ["Backlog", "Planned", "In Progress", "Completed"]
    assert [s["position"] for s in stages.json()["data"]] == [1, 2, 3, 4]


@pytest.mark.asyncio
async def test_create_project_with_custom_stages(async_client: httpx.AsyncClient, db_session: AsyncSession):
    user = await create_test_user(db_session)

    response = await async_client.post(
        "/api/projects",
        json={"title": "Custom", "stages": [{"title": "Ideas"}, {"title": "Shipped", "color": "bg-green-500"}]},
        headers=auth_headers(user),
    )

    project_id = response.json()["data"]["id"]
    stages = (await async_client.get(f"/api/projects/{project_id}/stages")).json()["data"]
    assert [s["title"] for s in stages] == ["Ideas", "Shipped"]
    assert stages[1]["color"] == "bg-green-500"


@pytest.mark.asyncio
async def test_create_project_invalidates_public_search(async_client: httpx.AsyncClient, db_session: AsyncSession, mock_redis):
    user = await create_test_user(db_session)
    await mock_redis.set("search:public:::created_at:desc:1:50", {"projects": []})

    await async_client.post("/api/projects", json={"title": "Fresh"}, headers=auth_headers(user))

    assert mock_redis.cache == {}


@pytest.mark.asyncio
async def test_create_project_requires_title(async_client: httpx.AsyncClient, db_session: AsyncSession):
    user = await create_test_user(db_session)

    response = await async_client.post("/api/projects", json={"description": "no title"}, headers=auth_headers(user))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_private_project_visibility(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    viewer = await create_test_user(db_session)
    stranger = await create_test_user(db_session)
    project = await create_test_project(db_session, owner, visibility=ProjectVisibility.PRIVATE)
    await add_test_member(db_session, project, viewer, ProjectRole.VIEWER)

    anonymous = await async_client.get(f"/api/projects/{project.id}")
    hidden = await async_client.get(f"/api/projects/{project.id}", headers=auth_headers(stranger))
    as_member = await async_client.get(f"/api/projects/{project.id}", headers=auth_headers(viewer))
    as_owner = await async_client.get(f"/api/projects/{project.id}", headers=auth_headers(owner))

    assert anonymous.status_code == 404
    assert hidden.status_code == 404
    assert hidden.json()["message"] == "Project not found or access denied"
    assert as_member.status_code == 200
    assert as_member.json()["data"]["user_role"] == "viewer"
    assert as_owner.json()["data"]["user_role"] == "owner"


@pytest.mark.asyncio
async def test_project_detail(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    await create_test_feature(db_session, project, owner, title="First")
    await create_test_feature(db_session, project, owner, title="Second")

    response = await async_client.get(f"/api/projects/{project.id}")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == project.id
    assert data["feature_count"] == 2
    assert len(data["features"]) == 2
    assert len(data["stages"]) == 4
    assert data["follower_count"] == 0
    assert data["is_following"] is False
    assert data["user_role"] is None


@pytest.mark.asyncio
async def test_my_projects(async_client: httpx.AsyncClient, db_session: AsyncSession):
    user = await create_test_user(db_session)
    other = await create_test_user(db_session)
    owned = await create_test_project(db_session, user, title="Owned")
    shared = await create_test_project(db_session, other, title="Shared", visibility=ProjectVisibility.PRIVATE)
    await create_test_project(db_session, other, title="Unrelated")
    await add_test_member(db_session, shared, user, ProjectRole.EDITOR)

    response = await async_client.get("/api/projects/my-projects", headers=auth_headers(user))

    assert response.status_code == 200
    projects = {p["id"]: p for p in response.json()["data"]}
    assert set(projects) == {owned.id, shared.id}
    assert projects[owned.id]["role"] == "owner"
    assert projects[shared.id]["role"] == "editor"
    assert projects[shared.id]["member_count"] == 1


@pytest.mark.asyncio
async def test_update_project_owner_only(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    admin = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    await add_test_member(db_session, project, admin, ProjectRole.ADMIN)

    denied = await async_client.put(f"/api/projects/{project.id}", json={"title": "Hijack"}, headers=auth_headers(admin))
    assert denied.status_code == 404
    assert denied.json()["message"] == "Project not found or insufficient permissions"

    response = await async_client.put(
        f"/api/projects/{project.id}", json={"title": "New Name", "progress": 40}, headers=auth_headers(owner)
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["title"] == "New Name"
    assert data["slug"] == "new-name"
    assert data["progress"] == 40


@pytest.mark.asyncio
async def test_delete_project_cascades(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    feature = await create_test_feature(db_session, project, owner)

    response = await async_client.delete(f"/api/projects/{project.id}", headers=auth_headers(owner))

    assert response.status_code == 200
    assert (await async_client.get(f"/api/projects/{project.id}")).status_code == 404
    assert (await async_client.get(f"/api/features/{feature.id}")).status_code == 404


@pytest.mark.asyncio
async def test_follow_and_unfollow(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    fan = await create_test_user(db_session, name="Fan")
    project = await create_test_project(db_session, owner)
    headers = auth_headers(fan)

    followed = await async_client.post(f"/api/projects/{project.id}/follow", headers=headers)
    assert followed.status_code == 200
    assert followed.json()["data"] == {"following": True, "follower_count": 1}

    again = await async_client.post(f"/api/projects/{project.id}/follow", headers=headers)
    assert again.status_code == 409
    assert again.json()["message"] == "Already following this project"

    followers = await async_client.get(f"/api/projects/{project.id}/followers")
    assert [f["user"]["name"] for f in followers.json()["data"]] == ["Fan"]

    detail = await async_client.get(f"/api/projects/{project.id}", headers=headers)
    assert detail.json()["data"]["is_following"] is True

    mine = await async_client.get("/api/users/followed-projects", headers=headers)
    assert [p["id"] for p in mine.json()["data"]] == [project.id]

    unfollowed = await async_client.delete(f"/api/projects/{project.id}/follow", headers=headers)
    assert unfollowed.json()["data"] == {"following": False, "follower_count": 0}

    missing = await async_client.delete(f"/api/projects/{project.id}/follow", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["message"] == "Not following this project"


@pytest.mark.asyncio
async def test_follow_private_project_hidden(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    stranger = await create_test_user(db_session)
    project = await create_test_project(db_session, owner, visibility=ProjectVisibility.PRIVATE)

    response = await async_client.post(f"/api/projects/{project.id}/follow", headers=auth_headers(stranger))

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_project_activity(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    fan = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)

    await async_client.post(f"/api/projects/{project.id}/follow", headers=auth_headers(fan))
    response = await async_client.get(f"/api/projects/{project.id}/activity")

    assert response.status_code == 200
    activities = response.json()["data"]["activities"]
    assert activities[0]["action"] == "PROJECT_FOLLOWED"
    assert activities[0]["metadata"] == {"follower_count": 1}
    assert activities[0]["project"]["id"] == project.id
    assert response.json()["data"]["pagination"]["total"] == 1
