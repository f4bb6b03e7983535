import asyncio
from unittest.mock import patch

import pytest
import httpx
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

import roadmap.repo.feature as feature_repo
from roadmap.models.feature import Feature, Vote
from roadmap.models.project import ProjectVisibility
from tests.utils.test_utils import create_test_user, create_test_project, create_test_feature, auth_headers


async def vote(client: httpx.AsyncClient, feature_id: int, user, value: int) -> httpx.Response:
    return await client.post(f"/api/features/{feature_id}/vote", json={"value": value}, headers=auth_headers(user))


async def stored_totals(database, feature_id: int):
    """vote_count фичи и фактическая сумма голосов"""
    async with database.session() as session:
        cached = (await session.execute(select(Feature.vote_count).where(Feature.id == feature_id))).scalar_one()
        actual = (
            await session.execute(select(func.coalesce(func.sum(Vote.value), 0)).where(Vote.feature_id == feature_id))
        ).scalar_one()
    return cached, actual


@pytest.mark.asyncio
async def test_vote_count_is_sum_of_votes(async_client: httpx.AsyncClient, db_session: AsyncSession, database):
    owner = await create_test_user(db_session)
    first = await create_test_user(db_session)
    second = await create_test_user(db_session)
    third = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    feature = await create_test_feature(db_session, project, owner)

    assert (await vote(async_client, feature.id, first, 1)).json()["data"]["vote_count"] == 1
    assert (await vote(async_client, feature.id, second, 1)).json()["data"]["vote_count"] == 2
    response = await vote(async_client, feature.id, third, -1)
    assert response.status_code == 200
    assert response.json()["message"] == "Vote recorded"
    assert response.json()["data"]["vote"]["value"] == -1
    assert response.json()["data"]["vote_count"] == 1

    removed = await async_client.delete(f"/api/features/{feature.id}/vote", headers=auth_headers(third))
    assert removed.status_code == 200
    assert removed.json()["data"] == {"vote": None, "vote_count": 2}

    assert await stored_totals(database, feature.id) == (2, 2)


@pytest.mark.asyncio
async def test_revote_replaces_previous_vote(async_client: httpx.AsyncClient, db_session: AsyncSession, database):
    owner = await create_test_user(db_session)
    voter = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    feature = await create_test_feature(db_session, project, owner)

    await vote(async_client, feature.id, voter, 1)
    response = await vote(async_client, feature.id, voter, -1)

    assert response.json()["data"]["vote_count"] == -1
    async with database.session() as session:
        votes = (await session.execute(select(Vote).where(Vote.feature_id == feature.id))).scalars().all()
    assert len(votes) == 1
    assert await stored_totals(database, feature.id) == (-1, -1)


@pytest.mark.asyncio
async def test_invalid_vote_value(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    feature = await create_test_feature(db_session, project, owner)

    response = await vote(async_client, feature.id, owner, 2)

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "value"


@pytest.mark.asyncio
async def test_remove_missing_vote(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    feature = await create_test_feature(db_session, project, owner)

    response = await async_client.delete(f"/api/features/{feature.id}/vote", headers=auth_headers(owner))

    assert response.status_code == 404
    assert response.json()["message"] == "Vote not found"


@pytest.mark.asyncio
async def test_vote_on_hidden_feature(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    stranger = await create_test_user(db_session)
    project = await create_test_project(db_session, owner, visibility=ProjectVisibility.PRIVATE)
    feature = await create_test_feature(db_session, project, owner)

    response = await vote(async_client, feature.id, stranger, 1)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_feature_detail_shows_user_vote(async_client: httpx.AsyncClient, db_session: AsyncSession):
    owner = await create_test_user(db_session)
    voter = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    feature = await create_test_feature(db_session, project, owner)
    await vote(async_client, feature.id, voter, -1)

    as_voter = await async_client.get(f"/api/features/{feature.id}", headers=auth_headers(voter))
    anonymous = await async_client.get(f"/api/features/{feature.id}")

    assert as_voter.json()["data"]["user_vote"] == -1
    assert as_voter.json()["data"]["vote_count"] == -1
    assert len(as_voter.json()["data"]["votes"]) == 1
    assert anonymous.json()["data"]["user_vote"] is None


@pytest.mark.asyncio
async def test_concurrent_identical_votes(async_client: httpx.AsyncClient, db_session: AsyncSession, database):
    owner = await create_test_user(db_session)
    voter = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    feature = await create_test_feature(db_session, project, owner)

    responses = await asyncio.gather(
        vote(async_client, feature.id, voter, 1),
        vote(async_client, feature.id, voter, 1),
    )

    assert [r.status_code for r in responses] == [200, 200]
    assert all(r.json()["data"]["vote_count"] == 1 for r in responses)
    assert await stored_totals(database, feature.id) == (1, 1)
    async with database.session() as session:
        rows = (await session.execute(select(func.count(Vote.id)).where(Vote.feature_id == feature.id))).scalar_one()
    assert rows == 1


@pytest.mark.asyncio
async def test_vote_inserted_meanwhile_becomes_update(
    async_client: httpx.AsyncClient, db_session: AsyncSession, database
):
    """Голос, вставленный между чтением и записью, перезаписывается, а не дает 500"""
    owner = await create_test_user(db_session)
    voter = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    feature = await create_test_feature(db_session, project, owner)
    await vote(async_client, feature.id, voter, 1)

    real_get_vote = feature_repo.get_vote
    reads = []

    async def stale_get_vote(db, feature_id, user_id):
        reads.append(user_id)
        if len(reads) == 1:
            return None
        return await real_get_vote(db, feature_id, user_id)

    with patch.object(feature_repo, "get_vote", stale_get_vote):
        response = await vote(async_client, feature.id, voter, -1)

    assert response.status_code == 200
    assert response.json()["data"]["vote"]["value"] == -1
    assert response.json()["data"]["vote_count"] == -1
    assert reads == [voter.id, voter.id]
    assert await stored_totals(database, feature.id) == (-1, -1)
