from enum import Enum


class MemoryScope(str, Enum):
    """Namespace a memory entry is keyed under."""

    PROJECT = "project"
    CLIENT = "client"
    ORG = "org"
    CHAIN = "chain"

    @property
    def scope_type(self) -> str:
        """Entity type tag of the record a scope id refers to."""
        return _SCOPE_TYPES[self]


_SCOPE_TYPES = {
    MemoryScope.PROJECT: "project",
    MemoryScope.CLIENT: "party",
    MemoryScope.ORG: "team",
    MemoryScope.CHAIN: "agent_chain_execution",
}
