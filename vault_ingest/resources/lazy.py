from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class LazyResource(Generic[T]):
    """A heavyweight handle created on first use and released explicitly.

    ``factory`` builds the resource; ``finalizer`` (optional) tears it down.
    After :meth:`release` the next :meth:`get` builds a fresh instance.
    """

    def __init__(
        self,
        factory: Callable[[], T],
        finalizer: Callable[[T], None] | None = None,
    ) -> None:
        self._factory = factory
        self._finalizer = finalizer
        self._instance: T | None = None

    @property
    def is_initialized(self) -> bool:
        return self._instance is not None

    def get(self) -> T:
        if self._instance is None:
            self._instance = self._factory()
        return self._instance

    def release(self) -> None:
        instance, self._instance = self._instance, None
        if instance is not None and self._finalizer is not None:
            self._finalizer(instance)
