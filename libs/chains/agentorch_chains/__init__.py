"""Multi-agent chains: definitions, executions and the step state machine."""
