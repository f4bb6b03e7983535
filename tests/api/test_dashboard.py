import pytest
import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.models.feature import FeatureStatus, FeaturePriority
from roadmap.models.project import ProjectRole, ProjectVisibility
from tests.utils.test_utils import (
    create_test_user,
    create_test_project,
    create_test_feature,
    add_test_member,
    auth_headers,
)


@pytest.mark.asyncio
async def test_user_dashboard(async_client: httpx.AsyncClient, db_session: AsyncSession):
    user = await create_test_user(db_session)
    other = await create_test_user(db_session)
    owned = await create_test_project(db_session, user, title="Mine", progress=90)
    shared = await create_test_project(db_session, other, title="Shared", progress=10)
    await add_test_member(db_session, shared, user, ProjectRole.EDITOR)
    await create_test_project(db_session, other, title="Unrelated")

    created = await async_client.post(
        f"/api/projects/{owned.id}/features", json={"title": "Idea"}, headers=auth_headers(user)
    )
    feature_id = created.json()["data"]["id"]
    await async_client.post(f"/api/features/{feature_id}/vote", json={"value": 1}, headers=auth_headers(user))
    await async_client.post(f"/api/projects/{shared.id}/follow", headers=auth_headers(user))

    response = await async_client.get("/api/dashboard/user", headers=auth_headers(user))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["summary"]["total_projects"] == 2
    assert data["summary"]["total_features"] == 1
    assert data["summary"]["total_votes"] == 1
    assert data["summary"]["followed_projects"] == 1
    assert data["progress"]["overall_progress"] == 50
    assert data["progress"]["feature_status"]["open"] == 1
    assert [p["title"] for p in data["projects"]["owned"]] == ["Mine"]
    assert [p["title"] for p in data["projects"]["collaborating"]] == ["Shared"]
    assert [p["title"] for p in data["projects"]["needing_attention"]] == ["Shared"]
    assert [p["id"] for p in data["followed_projects"]] == [shared.id]
    assert data["quick_stats"]["features_this_period"] == 1
    assert data["quick_stats"]["timeframe"] == "week"
    actions = {a["action"] for a in data["recent_activity"]}
    assert {"FEATURE_CREATED", "PROJECT_FOLLOWED"} <= actions


@pytest.mark.asyncio
async def test_user_dashboard_new_user_insight(async_client: httpx.AsyncClient, db_session: AsyncSession):
    user = await create_test_user(db_session)

    response = await async_client.get("/api/dashboard/user?timeframe=all", headers=auth_headers(user))

    data = response.json()["data"]
    assert data["summary"]["total_projects"] == 0
    assert data["summary"]["engagement_score"] == 0
    assert data["insights"] == ["Ready to start your first project? Create one to begin your roadmap journey!"]


@pytest.mark.asyncio
async def test_user_dashboard_invalid_timeframe(async_client: httpx.AsyncClient, db_session: AsyncSession):
    user = await create_test_user(db_session)

    response = await async_client.get("/api/dashboard/user?timeframe=year", headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["message"] == "Timeframe must be one of week, month, all"


@pytest.mark.asyncio
async def test_project_dashboard(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    fan = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    await create_test_feature(db_session, project, owner, status=FeatureStatus.COMPLETED, progress=100)
    await create_test_feature(db_session, project, owner, priority=FeaturePriority.HIGH, progress=20)
    await async_client.post(f"/api/projects/{project.id}/follow", headers=auth_headers(fan))

    response = await async_client.get(f"/api/dashboard/project/{project.id}")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["project"]["feature_count"] == 2
    assert data["project"]["follower_count"] == 1
    analytics = data["analytics"]
    assert analytics["completion_rate"] == 50
    assert analytics["avg_votes_per_feature"] == 0.0
    assert analytics["engagement_rate"] == 200
    assert analytics["priority_breakdown"] == {"low": 0, "medium": 1, "high": 1}
    assert analytics["status_breakdown"]["completed"] == 1
    backlog = analytics["stages"][0]
    assert backlog["title"] == "Backlog"
    assert backlog["feature_count"] == 2
    assert backlog["average_progress"] == 60


@pytest.mark.asyncio
async def test_project_dashboard_private(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    project = await create_test_project(db_session, owner, visibility=ProjectVisibility.PRIVATE)

    anonymous = await async_client.get(f"/api/dashboard/project/{project.id}")
    as_owner = await async_client.get(f"/api/dashboard/project/{project.id}", headers=auth_headers(owner))

    assert anonymous.status_code == 404
    assert as_owner.status_code == 200
    assert as_owner.json()["data"]["project"]["role"] == "owner"


@pytest.mark.asyncio
async def test_stats_series(async_client: httpx.AsyncClient, db_session: AsyncSession):
    user = await create_test_user(db_session)
    project = await create_test_project(db_session, user, progress=40)
    await async_client.post(f"/api/projects/{project.id}/features", json={"title": "One"}, headers=auth_headers(user))

    response = await async_client.get("/api/dashboard/stats?period=7d", headers=auth_headers(user))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["period"] == "7d"
    assert len(data["activity_over_time"]) == 8
    assert sum(point["count"] for point in data["feature_trends"]) == 1
    assert sum(point["count"] for point in data["activity_over_time"]) >= 1
    assert data["project_progress"] == [
        {"id": project.id, "title": project.title, "progress": 40, "color": "#EF4444"}
    ]


@pytest.mark.asyncio
async def test_stats_invalid_period(async_client: httpx.AsyncClient, db_session: AsyncSession):
    user = await create_test_user(db_session)

    response = await async_client.get("/api/dashboard/stats?period=1y", headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["message"] == "Period must be one of 7d, 30d, 90d"
