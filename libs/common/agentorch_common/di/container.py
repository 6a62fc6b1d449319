"""Process-wide registry of shared infrastructure (event broker, job queue).

The worker registers its Redis event broker and Temporal executor here at
startup; activities resolve them lazily, so a broker that is never used is
never connected.
"""

from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")


class DIContainer:
    def __init__(self):
        self._instances: dict[type[Any], Any] = {}
        self._factories: dict[type[Any], Callable[[], Any]] = {}

    def register_singleton(self, interface: type[T], instance: T) -> None:
        self._instances[interface] = instance

    def register_factory(self, interface: type[T], factory: Callable[[], T]) -> None:
        """Register a lazily-built instance; ``factory`` runs on first ``get``."""
        self._instances.pop(interface, None)
        self._factories[interface] = factory

    def get(self, interface: type[T]) -> T:
        if interface not in self._instances:
            factory = self._factories.get(interface)
            if factory is None:
                raise ValueError(f"No registration found for {interface.__name__}")
            self._instances[interface] = factory()
        return self._instances[interface]

    def has(self, interface: type[Any]) -> bool:
        return interface in self._instances or interface in self._factories

    def clear(self) -> None:
        self._instances.clear()
        self._factories.clear()


_container = DIContainer()


def get_container() -> DIContainer:
    return _container
