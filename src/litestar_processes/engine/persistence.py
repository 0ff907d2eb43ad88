"""Bounded calls into collaborators.

Every persistence and directory call made by the engine goes through
:func:`guarded`, which applies a timeout and turns collaborator failures into
:class:`~litestar_processes.exceptions.DependencyUnavailableError`.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, TypeVar

from litestar_processes.exceptions import DependencyUnavailableError, ProcessError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable

    from litestar_processes.core.protocols import ProcessStore

__all__ = ["guarded", "unit_of_work"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def guarded(call: Awaitable[T], dependency: str, timeout: float | None) -> T:
    """Await a collaborator call with a timeout.

    Args:
        call: The pending collaborator call.
        dependency: Collaborator name reported on failure, e.g. ``"persistence"``.
        timeout: Seconds to wait, or None to wait indefinitely.

    Returns:
        The result of the call.

    Raises:
        DependencyUnavailableError: If the call raised or timed out.
        ProcessError: Engine errors raised by the collaborator pass through unchanged.
    """
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except ProcessError:
        raise
    except asyncio.TimeoutError as exc:
        logger.warning("%s call timed out after %ss", dependency, timeout, extra={"dependency": dependency})
        raise DependencyUnavailableError(dependency, exc) from exc
    except Exception as exc:
        logger.warning("%s call failed: %r", dependency, exc, extra={"dependency": dependency})
        raise DependencyUnavailableError(dependency, exc) from exc


@asynccontextmanager
async def unit_of_work(store: ProcessStore) -> AsyncIterator[None]:
    """Run the block inside a store transaction.

    Exceptions raised by the block propagate unchanged and roll the transaction
    back. Failures to open or commit the transaction itself are reported as
    :class:`~litestar_processes.exceptions.DependencyUnavailableError`.

    Example:
        >>> async with unit_of_work(store):
        ...     await store.save_instance(instance)
    """
    body_failed = False
    try:
        async with store.transaction():
            try:
                yield
            except BaseException:
                body_failed = True
                raise
    except ProcessError:
        raise
    except Exception as exc:
        if body_failed:
            raise
        logger.warning("persistence transaction failed: %r", exc, extra={"dependency": "persistence"})
        raise DependencyUnavailableError("persistence", exc) from exc
