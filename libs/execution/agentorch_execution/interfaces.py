"""Dependencies injected into Temporal activities.

Activities open their own database session per attempt so that a retried
activity never reuses a broken transaction.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from agentorch_common.config.database import get_db

if TYPE_CHECKING:
    from agentorch_common.config import Settings
    from agentorch_common.events.broker import EventBroker
    from agentorch_common.workflow import WorkflowExecutor
    from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class ActivityDependencies:
    """Container for what activities need to build their services.

    ``workflow_executor`` enqueues follow-up jobs (parallel chain steps);
    ``session_factory`` yields a transactional session and defaults to the
    application database.
    """

    settings: "Settings"
    event_broker: "EventBroker | None" = None
    workflow_executor: "WorkflowExecutor | None" = None
    session_factory: "Callable[[], AbstractAsyncContextManager[AsyncSession]]" = field(
        default=get_db
    )
