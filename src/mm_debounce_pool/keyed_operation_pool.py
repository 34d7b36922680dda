"""Keyed pool of async operations with per-key deduplication and cross-key serialization."""

import asyncio
import functools
import inspect
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, NoReturn, cast

from .errors import InvalidCurriedResolverError, InvalidResolverError

type Key = Hashable
type Resolver[T] = Callable[[], Awaitable[T] | T]

logger = logging.getLogger(__name__)


class KeyedOperationPool[T]:
    """Share one in-flight operation per key and run operations for different keys one at a time.

    A resolver is registered per key. Requesting a key returns an asyncio.Task (the handle):
    1) if an operation for this key is outstanding, the same handle is returned
    2) if an operation for another key is outstanding, a new handle is chained after
       the most recently issued one and the resolver runs once that settles
       (successfully or not)
    3) otherwise the resolver is invoked right away

    Failures never raise from request(), they are delivered through the handle. A failure
    in one link of the chain does not affect the following links.

    Note: handles that never settle keep their key in flight and block the chain. The pool
    has no timeout or cancellation of its own, cancel the handle to release it.

    Example:
        pool: KeyedOperationPool[str] = KeyedOperationPool(name="api")
        pool.register("foo", fetch_foo)
        pool.register("bar", fetch_bar)

        call1 = pool.request("foo")  # starts fetch_foo
        call2 = pool.request("foo")  # same handle as call1
        call3 = pool.request("bar")  # fetch_bar starts after call1 settles

        assert call1 is call2
        print(await call1, await call3)

    Extra positional arguments turn the registered factory into a curry producer:
    request("user", 42) calls factory(42) to obtain the resolver, then invokes it.
    They are ignored when the key is already in flight.
    """

    def __init__(self, name: str | None = None, suppress_logging: bool = False) -> None:
        """Initialize KeyedOperationPool.

        Args:
            name: Optional name used as a prefix for handle task names (useful for debugging)
            suppress_logging: If True, the pool emits no log records
        """
        self.name = name
        self.suppress_logging = suppress_logging
        self._factories: dict[Key, object] = {}
        self._in_flight: dict[Key, asyncio.Task[T]] = {}
        self._pending: asyncio.Task[T] | None = None

    def has_factory(self, key: Key) -> bool:
        return self._factories.get(key) is not None

    def register(self, key: Key, factory: Resolver[T] | Callable[..., Any]) -> None:
        """Register the resolver (or curry producer) for a key, replacing any previous one.

        Operations already running under the old factory are not affected. The factory
        is validated only when it is invoked.
        """
        self._factories[key] = factory

    def is_in_flight(self, key: Key) -> bool:
        return key in self._in_flight

    @property
    def is_idle(self) -> bool:
        """True if no operation is outstanding anywhere in the pool."""
        return self._pending is None

    def request(self, key: Key, *args: object) -> asyncio.Task[T]:
        """Return the handle for an operation on the given key.

        Must be called from a running event loop.

        Args:
            key: Identifier of the registered factory
            *args: Arguments for the curry producer registered under the key

        Raises:
            RuntimeError: If there is no running event loop
        """
        handle = self._in_flight.get(key)
        if handle is not None:
            self._debug("join key=%s", key)
            return handle

        loop = asyncio.get_running_loop()
        previous = self._pending
        operation: Awaitable[T]
        if previous is None:
            self._debug("start key=%s", key)
            operation = self._start(key, args)
        else:
            self._debug("chain key=%s after=%s", key, previous.get_name())
            operation = self._chain(previous, key, args)

        handle = loop.create_task(self._track(key, operation), name=self._task_name(key))
        handle.add_done_callback(functools.partial(self._on_done, key, operation))
        self._in_flight[key] = handle
        self._pending = handle
        return handle

    def _start(self, key: Key, args: tuple[object, ...]) -> Awaitable[T]:
        try:
            return self._invoke(key, args)
        except Exception as err:
            return _failed(err)

    async def _chain(self, previous: asyncio.Task[T], key: Key, args: tuple[object, ...]) -> T:
        # asyncio.wait returns on success, failure and cancellation alike
        await asyncio.wait([previous])
        self._debug("start key=%s", key)
        return await self._invoke(key, args)

    def _invoke(self, key: Key, args: tuple[object, ...]) -> Awaitable[T]:
        resolver = self._factories.get(key)
        if not callable(resolver):
            raise InvalidResolverError(resolver, key)

        if args:
            resolver = resolver(*args)
            if not callable(resolver):
                raise InvalidCurriedResolverError(resolver, key)

        result = resolver()
        if inspect.isawaitable(result):
            return result
        return _resolved(cast(T, result))

    async def _track(self, key: Key, operation: Awaitable[T]) -> T:
        handle = asyncio.current_task()
        try:
            return await operation
        finally:
            self._release(key, handle)

    def _on_done(self, key: Key, operation: Awaitable[T], handle: asyncio.Task[T]) -> None:
        # A handle cancelled before its first step never enters _track
        if inspect.iscoroutine(operation):
            operation.close()
        self._release(key, handle)

    def _release(self, key: Key, handle: asyncio.Future[Any] | None) -> None:
        if self._in_flight.get(key) is handle:
            del self._in_flight[key]
            self._debug("settle key=%s", key)
        if self._pending is handle:
            self._pending = None

    def _task_name(self, key: Key) -> str:
        return f"{self.name}-{key}" if self.name else str(key)

    def _debug(self, msg: str, *args: object) -> None:
        if not self.suppress_logging:
            logger.debug(msg, *args, extra={"pool_name": self.name})


async def _resolved[T](value: T) -> T:
    return value


async def _failed(err: Exception) -> NoReturn:
    raise err
