"""
gatorpay/services/observable.py

Purpose: Reactive state cells shared between the store and the screens

- Observable: typed mutable value with change subscriptions
- Computed: read-only value derived from other observables
- Notifications are synchronous, so dependents never read stale state
"""

from typing import Any, Callable, Generic, List, TypeVar

from gatorpay.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Listener = Callable[[Any], None]


class Observable(Generic[T]):
    """
    Mutable cell that notifies subscribers whenever its value changes.

    Subscribers run in registration order before `set()` returns. A
    subscriber that raises is logged and skipped; the others still run.
    """

    def __init__(self, value: T, name: str = ""):
        self._value = value
        self._name = name
        self._listeners: List[Listener] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        if value == self._value:
            return
        self._value = value
        self._notify()

    def update(self, fn: Callable[[T], T]) -> None:
        self.set(fn(self._value))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Registers a listener called with the new value.

        Returns:
            Function removing the listener (safe to call more than once)
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            try:
                listener(self._value)
            except Exception as e:
                logger.error(f"Listener for {self._name or 'observable'} failed: {e}", exc_info=True)

    def __repr__(self) -> str:
        return f"Observable({self._name or '?'}={self._value!r})"


class Computed(Observable[T]):
    """
    Read-only observable recomputed whenever one of its sources changes.
    """

    def __init__(self, compute: Callable[[], T], *sources: Observable, name: str = ""):
        self._compute = compute
        super().__init__(compute(), name=name)
        self._unsubscribers = [source.subscribe(self._recompute) for source in sources]

    def _recompute(self, _value: Any) -> None:
        Observable.set(self, self._compute())

    def set(self, value: T) -> None:
        raise AttributeError(f"{self._name or 'computed value'} is read-only")

    def dispose(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
