from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from roadmap.models.project import ProjectInvite
from roadmap.worker.tasks import delete_expired_invites
from tests.utils.test_utils import create_test_user, create_test_project, create_test_invite


@pytest.mark.asyncio
async def test_delete_expired_and_accepted_invites(db_session: AsyncSession, database):
    owner = await create_test_user(db_session)
    project = await create_test_project(db_session, owner)
    fresh = await create_test_invite(db_session, project, "fresh@example.com", owner)
    await create_test_invite(db_session, project, "old@example.com", owner, expires_in=timedelta(hours=-1))
    accepted = await create_test_invite(db_session, project, "done@example.com", owner)
    accepted.accepted = True
    await db_session.commit()

    removed = await delete_expired_invites(database)

    assert removed == 2
    async with database.session() as session:
        remaining = (await session.execute(select(ProjectInvite.id))).scalars().all()
    assert remaining == [fresh.id]
