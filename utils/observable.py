import asyncio
from typing import Callable, Generic, List, Tuple, TypeVar

from utils.logging import logger

__all__ = ["ObservableState"]

T = TypeVar("T")


class ObservableState(Generic[T]):
    """Holds the current value of a piece of UI state and pushes changes to subscribers.

    Setting a value equal to the current one is a no-op, so subscribers only
    see real transitions. New subscribers are called immediately with the
    current value.
    """

    def __init__(self, initial: T, name: str = "state"):
        self._value = initial
        self._name = name
        self._subscribers: List[Callable[[T], None]] = []
        self._waiters: List[Tuple[Callable[[T], bool], asyncio.Future]] = []

    @property
    def value(self) -> T:
        return self._value

    @value.setter
    def value(self, new_value: T) -> None:
        if new_value == self._value:
            return
        self._value = new_value
        logger.debug(f"{self._name} changed")

        # Subscriber failures are logged, delivery carries on
        for handler in list(self._subscribers):
            try:
                handler(new_value)
            except Exception:
                logger.exception(f"Subscriber of {self._name} failed")

        for predicate, future in list(self._waiters):
            if not future.done() and predicate(new_value):
                future.set_result(new_value)

    def subscribe(self, handler: Callable[[T], None]) -> Callable[[], None]:
        """Register a handler and return a function that removes it."""
        self._subscribers.append(handler)
        handler(self._value)
        return lambda: self.unsubscribe(handler)

    def unsubscribe(self, handler: Callable[[T], None]) -> None:
        if handler in self._subscribers:
            self._subscribers.remove(handler)

    async def wait_for(self, predicate: Callable[[T], bool], timeout: float | None = None) -> T:
        """Wait until the value satisfies predicate and return that value.

        Raises:
            asyncio.TimeoutError: If timeout elapses first
        """
        if predicate(self._value):
            return self._value

        future = asyncio.get_running_loop().create_future()
        waiter = (predicate, future)
        self._waiters.append(waiter)
        try:
            return await asyncio.wait_for(future, timeout)
        finally:
            self._waiters.remove(waiter)
