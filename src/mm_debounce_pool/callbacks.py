"""Adapter for executor-style resolvers that report through callbacks."""

import asyncio
from collections.abc import Callable

type Resolve[T] = Callable[[T], None]
type Reject = Callable[[BaseException], None]
type Executor[T] = Callable[[Resolve[T], Reject], object]


def from_callbacks[T](executor: Executor[T]) -> Callable[[], asyncio.Future[T]]:
    """Wrap an executor taking (resolve, reject) into a pool resolver.

    Each call creates a future on the running loop and runs the executor
    immediately. Only the first resolve/reject call settles the future, later
    calls are ignored. If the executor raises before settling, the future fails
    with that exception.

    Example:
        def load_user(resolve, reject):
            loop = asyncio.get_running_loop()
            loop.call_later(1.0, resolve, "user data")

        pool.register("user", from_callbacks(load_user))
    """

    def resolver() -> asyncio.Future[T]:
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()

        def resolve(value: T) -> None:
            if not future.done():
                future.set_result(value)

        def reject(error: BaseException) -> None:
            if not future.done():
                future.set_exception(error)

        try:
            executor(resolve, reject)
        except Exception as err:
            reject(err)
        return future

    return resolver
