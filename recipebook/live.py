"""
Push-stream primitives for live queries and reactive state.

This module provides the small reactive toolkit the stores and the state
container are built on:

- Subscription: handle returned by every subscribe(); unsubscribe() releases the
  underlying listener immediately and is safe to call more than once. Also a
  context manager.
- LiveQuery: a cold stream. Every subscriber runs the producer, which registers
  a backend listener and returns its teardown.
- SharedLiveQuery: a hot, shared view over a LiveQuery. The first subscriber
  starts the upstream, later subscribers get the latest value replayed, and the
  upstream is torn down `linger_seconds` after the last subscriber leaves.
- MutableState: a settable value that notifies subscribers on change.
- combine(): merge several streams into one derived stream.

All streams conflate equal consecutive values and deliver the current value to
a new subscriber synchronously where one is available.
"""

import logging
import threading
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Callback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]
# A producer receives (emit, fail) and returns a teardown callable
Producer = Callable[[Callback, ErrorCallback], Callable[[], None]]

_MISSING = object()

# Default grace period before a shared view releases its upstream listener
DEFAULT_LINGER_SECONDS = 5.0


def _log_unhandled(exc: Exception) -> None:
    logger.error("Unhandled live query error: %s", exc)


class Subscription:
    """
    Handle for an active subscription.

    The teardown runs exactly once, on the first unsubscribe(). If the teardown
    is attached after unsubscribe() was already called (the subscriber left
    while the producer was still starting), it runs immediately.
    """

    def __init__(self, teardown: Optional[Callable[[], None]] = None):
        self._lock = threading.Lock()
        self._teardown = teardown
        self.closed = False

    def attach(self, teardown: Callable[[], None]) -> None:
        with self._lock:
            if not self.closed:
                self._teardown = teardown
                return
        teardown()

    def unsubscribe(self) -> None:
        with self._lock:
            if self.closed:
                return
            self.closed = True
            teardown = self._teardown
            self._teardown = None
        if teardown is not None:
            teardown()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unsubscribe()


class Observable(Generic[T]):
    """Common interface of every stream in this module."""

    def subscribe(
        self,
        callback: Callable[[T], None],
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        raise NotImplementedError

    def first(self, default: Any = None) -> Any:
        """
        Return the value delivered synchronously on subscribe, then unsubscribe.

        Stores emit their current snapshot on subscribe, so this reads a
        point-in-time value from any live query. Returns `default` when
        nothing is delivered synchronously.
        """
        received: List[Any] = []
        errors: List[Exception] = []
        sub = self.subscribe(received.append, errors.append)
        sub.unsubscribe()
        if errors and not received:
            raise errors[0]
        return received[0] if received else default

    def map(self, transform: Callable[[T], R], name: Optional[str] = None) -> "LiveQuery[R]":
        """Derive a stream by applying `transform` to every value."""
        source = self

        def producer(emit: Callback, fail: ErrorCallback) -> Callable[[], None]:
            def on_value(value):
                try:
                    mapped = transform(value)
                except Exception as exc:
                    fail(exc)
                    return
                emit(mapped)
            return source.subscribe(on_value, fail).unsubscribe

        return LiveQuery(producer, name=name or "map")

    def share(self, initial: Any, linger_seconds: float = DEFAULT_LINGER_SECONDS, name: Optional[str] = None) -> "SharedLiveQuery":
        """Share this stream between subscribers (see SharedLiveQuery)."""
        return SharedLiveQuery(self, initial=initial, linger_seconds=linger_seconds, name=name)


class LiveQuery(Observable[T]):
    """
    Cold stream backed by a producer function.

    Each subscribe() call invokes the producer with its own emit/fail pair;
    the producer returns the teardown that releases its listener.
    """

    def __init__(self, producer: Producer, name: str = "live_query"):
        self._producer = producer
        self.name = name

    def subscribe(
        self,
        callback: Callable[[T], None],
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        subscription = Subscription()
        last: List[Any] = [_MISSING]
        error_handler = on_error or _log_unhandled

        def emit(value):
            if subscription.closed:
                return
            if last[0] is not _MISSING and last[0] == value:
                return
            last[0] = value
            callback(value)

        def fail(exc: Exception):
            if subscription.closed:
                return
            error_handler(exc)

        teardown = self._producer(emit, fail)
        subscription.attach(teardown)
        logger.debug("Subscribed to %s", self.name)
        return subscription

    def __repr__(self) -> str:
        return f"LiveQuery({self.name!r})"


class _SharedSubscriber:
    """Per-subscriber delivery state of a SharedLiveQuery."""

    __slots__ = ("callback", "on_error", "last")

    def __init__(self, callback: Callable[[Any], None], on_error: Optional[ErrorCallback]):
        self.callback = callback
        self.on_error = on_error
        self.last = _MISSING


class SharedLiveQuery(Observable[T]):
    """
    Hot view shared by all subscribers of one upstream stream.

    - The upstream is subscribed when the first downstream subscriber arrives.
    - Later subscribers immediately receive the latest value (or `initial`).
    - After the last subscriber leaves, the upstream is kept alive for
      `linger_seconds`, then unsubscribed. A subscriber arriving inside that
      window cancels the teardown. linger_seconds <= 0 tears down immediately.
    - `value` is readable at any time and keeps the last value after teardown.

    A subscriber is registered before the upstream starts, so errors raised
    while the upstream takes its first snapshot reach that subscriber's
    on_error. Deliveries are serialised per view; a callback that raises is
    logged and does not stop delivery to the others.
    """

    def __init__(
        self,
        source: Observable[T],
        initial: Any,
        linger_seconds: float = DEFAULT_LINGER_SECONDS,
        name: Optional[str] = None,
    ):
        self._source = source
        self._value = initial
        self._linger_seconds = linger_seconds
        self.name = name or "shared"
        # State lock: subscribers, upstream handle, timer. Never held while calling out.
        self._lock = threading.RLock()
        # Delivery lock: orders fan-out and replay so no subscriber sees an older value last
        self._deliver_lock = threading.RLock()
        self._subscribers: Dict[int, _SharedSubscriber] = {}
        self._next_key = 0
        self._upstream: Optional[Subscription] = None
        self._starting = False
        self._linger_timer: Optional[threading.Timer] = None

    @property
    def value(self) -> T:
        return self._value

    @property
    def is_active(self) -> bool:
        """True while the upstream listener is held (including the linger window)."""
        return self._upstream is not None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(
        self,
        callback: Callable[[T], None],
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        subscriber = _SharedSubscriber(callback, on_error)
        with self._lock:
            self._cancel_linger()
            key = self._next_key
            self._next_key += 1
            self._subscribers[key] = subscriber
            start = self._upstream is None and not self._starting
            if start:
                self._starting = True

        if start:
            try:
                self._start()
            except Exception:
                self._remove(key)
                raise

        with self._deliver_lock:
            self._send(subscriber, self._value)
        return Subscription(lambda: self._remove(key))

    def _start(self) -> None:
        logger.info("Starting shared view %s", self.name)
        upstream = None
        try:
            upstream = self._source.subscribe(self._on_value, self._on_error)
        finally:
            with self._lock:
                self._starting = False
                if upstream is not None and self._subscribers:
                    self._upstream = upstream
                    upstream = None
        if upstream is not None:
            # Everybody left (or close() ran) while the upstream was starting
            self._stop(upstream)

    def _send(self, subscriber: _SharedSubscriber, value) -> None:
        if subscriber.last is not _MISSING and subscriber.last == value:
            return
        subscriber.last = value
        try:
            subscriber.callback(value)
        except Exception:
            logger.exception("Subscriber of shared view %s raised", self.name)

    def _on_value(self, value) -> None:
        with self._deliver_lock:
            with self._lock:
                if value == self._value:
                    return
                self._value = value
                targets = list(self._subscribers.values())
            for subscriber in targets:
                self._send(subscriber, value)

    def _on_error(self, exc: Exception) -> None:
        with self._lock:
            targets = [s.on_error for s in self._subscribers.values() if s.on_error is not None]
        if not targets:
            _log_unhandled(exc)
            return
        for on_error in targets:
            try:
                on_error(exc)
            except Exception:
                logger.exception("Error handler of shared view %s raised", self.name)

    def _remove(self, key: int) -> None:
        with self._lock:
            self._subscribers.pop(key, None)
            if self._subscribers or self._upstream is None:
                return
            if self._linger_seconds > 0:
                logger.debug("Shared view %s idle, lingering %.1fs", self.name, self._linger_seconds)
                self._linger_timer = threading.Timer(self._linger_seconds, self._linger_expired)
                self._linger_timer.daemon = True
                self._linger_timer.start()
                return
            upstream = self._upstream
            self._upstream = None
        self._stop(upstream)

    def _linger_expired(self) -> None:
        with self._lock:
            self._linger_timer = None
            if self._subscribers or self._upstream is None:
                return
            upstream = self._upstream
            self._upstream = None
        self._stop(upstream)

    def _stop(self, upstream: Subscription) -> None:
        logger.info("Stopping shared view %s", self.name)
        upstream.unsubscribe()

    def _cancel_linger(self) -> None:
        if self._linger_timer is not None:
            self._linger_timer.cancel()
            self._linger_timer = None

    def close(self) -> None:
        """Drop all subscribers and release the upstream now, skipping the linger."""
        with self._lock:
            self._cancel_linger()
            self._subscribers.clear()
            upstream = self._upstream
            self._upstream = None
        if upstream is not None:
            self._stop(upstream)

    def __repr__(self) -> str:
        return f"SharedLiveQuery({self.name!r}, active={self.is_active})"


class MutableState(Observable[T]):
    """
    Settable value holder.

    Subscribers receive the current value on subscribe and every subsequent
    change. Setting an equal value does not notify.
    """

    def __init__(self, initial: T, name: str = "state"):
        self._value = initial
        self.name = name
        self._lock = threading.Lock()
        self._subscribers: Dict[int, Callable[[T], None]] = {}
        self._next_key = 0

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        with self._lock:
            if value == self._value:
                return
            self._value = value
            targets = list(self._subscribers.values())
        for callback in targets:
            try:
                callback(value)
            except Exception:
                logger.exception("Subscriber of %s raised", self.name)

    def subscribe(
        self,
        callback: Callable[[T], None],
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        with self._lock:
            key = self._next_key
            self._next_key += 1
            self._subscribers[key] = callback
            current = self._value
        callback(current)
        return Subscription(lambda: self._remove(key))

    def _remove(self, key: int) -> None:
        with self._lock:
            self._subscribers.pop(key, None)

    def __repr__(self) -> str:
        return f"MutableState({self.name!r}, value={self._value!r})"


def combine(*sources: Observable, transform: Callable[..., R], name: str = "combine") -> LiveQuery[R]:
    """
    Merge several streams into one.

    The combined stream emits transform(*latest_values) once every source has
    delivered at least one value, and again whenever any source changes.
    Unsubscribing releases every source subscription.

    Args:
        *sources: Streams to merge
        transform: Function receiving the latest value of each source, in order
        name: Name used in log messages

    Returns:
        LiveQuery emitting the transformed values
    """
    def producer(emit: Callback, fail: ErrorCallback) -> Callable[[], None]:
        lock = threading.Lock()
        latest: List[Any] = [_MISSING] * len(sources)
        subscriptions: List[Subscription] = []

        def make_handler(index: int):
            def on_value(value):
                with lock:
                    latest[index] = value
                    if any(v is _MISSING for v in latest):
                        return
                    snapshot = list(latest)
                try:
                    result = transform(*snapshot)
                except Exception as exc:
                    fail(exc)
                    return
                emit(result)
            return on_value

        for i, source in enumerate(sources):
            subscriptions.append(source.subscribe(make_handler(i), fail))

        def teardown():
            for sub in subscriptions:
                sub.unsubscribe()

        return teardown

    return LiveQuery(producer, name=name)
