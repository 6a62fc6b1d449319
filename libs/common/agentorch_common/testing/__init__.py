from .mocks import TestEventBroker, TestWorkflowExecutor

__all__ = ["TestEventBroker", "TestWorkflowExecutor"]
