"""
Shared fixtures for orchestration tests.

Provides an in-memory SQLite database with every orchestration table, team
contexts, and the recording test doubles for the event broker and job queue.
"""

import pytest
import pytest_asyncio
from agentorch_agents.infrastructure import orm as agents_orm  # noqa: F401
from agentorch_approvals.infrastructure import orm as approvals_orm  # noqa: F401
from agentorch_chains.infrastructure import orm as chains_orm  # noqa: F401
from agentorch_common.auth.context import UserContext
from agentorch_common.base.models import BaseModel
from agentorch_common.base.repository_factory import RepositoryFactory
from agentorch_common.testing.mocks import TestEventBroker, TestWorkflowExecutor
from agentorch_memory.infrastructure import orm as memory_orm  # noqa: F401
from agentorch_triggers.infrastructure import orm as triggers_orm  # noqa: F401
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine using in-memory SQLite."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def user_context():
    """Acting user in the primary test team."""
    return UserContext(user_id="test-user-123", team_id="team-1", roles=["user"])


@pytest.fixture
def other_team_context():
    """Acting user in a second team, for isolation checks."""
    return UserContext(user_id="test-user-456", team_id="team-2", roles=["user"])


@pytest.fixture
def repository_factory(db_session, user_context):
    return RepositoryFactory(db_session, user_context)


@pytest.fixture
def event_broker():
    return TestEventBroker()


@pytest.fixture
def workflow_executor():
    return TestWorkflowExecutor()
