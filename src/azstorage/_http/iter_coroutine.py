"""iter_coroutine - drive non-suspending coroutines from synchronous code."""

from __future__ import annotations

import typing

_T = typing.TypeVar("_T")


def iter_coroutine(coro: typing.Coroutine[None, None, _T]) -> _T:
    """
    Run a coroutine to completion without an event loop.

    The synchronous clients share their request logic with the asynchronous
    ones by writing it as coroutines and pairing it with a blocking transport
    whose ``send`` never awaits anything that suspends. Such a coroutine
    finishes on the first ``send(None)``.

    Raises:
        RuntimeError: If the coroutine suspends instead of finishing.
    """
    try:
        coro.send(None)
    except StopIteration as ex:
        return ex.value  # type: ignore [no-any-return]
    else:
        raise RuntimeError(f"coroutine {coro!r} did not stop after one iteration!")
    finally:
        coro.close()


__all__ = ["iter_coroutine"]
