from enum import Enum


class ChainExecutionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ChainExecutionStatus.COMPLETED, ChainExecutionStatus.FAILED)


class ChainStepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_settled(self) -> bool:
        """True once the step no longer holds up a parallel group."""
        return self in (ChainStepStatus.COMPLETED, ChainStepStatus.FAILED)


class ExecutionMode(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class BranchAction(str, Enum):
    GOTO = "goto"
    SKIP = "skip"
    TERMINATE = "terminate"
