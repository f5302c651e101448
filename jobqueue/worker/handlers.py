"""
Job handlers registry and implementations.

A handler takes ``(job_id, args)`` and returns an optional result string.
Raising anything marks the job FAILED. Every invocation runs on a thread
of its own; coroutine functions are driven by a private event loop on
that thread. Handlers must not rely on unsynchronized shared state: many
invocations may be in flight at once, including ones the worker has
already given up on.
"""

import asyncio
import contextvars
import inspect
import logging
import threading
import traceback
from collections.abc import Awaitable, Callable, Sequence

from jobqueue.types.job import FailedStatus, FinishedStatus

logger = logging.getLogger(__name__)

# Type alias for job handler functions
JobHandler = Callable[[str, list[str]], str | None | Awaitable[str | None]]

# Handler registry
_handlers: dict[str, JobHandler] = {}


def register_handler(name: str) -> Callable[[JobHandler], JobHandler]:
    """
    Decorator to register a job handler.

    Args:
        name: The name workers use to look the handler up.

    Returns:
        Decorator function.

    Example:
        @register_handler("resize")
        def handle_resize(job_id: str, args: list[str]) -> str | None:
            ...
    """
    def decorator(handler: JobHandler) -> JobHandler:
        _handlers[name] = handler
        logger.debug(f"Registered handler: {name}")
        return handler
    return decorator


def get_handler(name: str) -> JobHandler | None:
    """
    Get a registered handler.

    Args:
        name: The handler name.

    Returns:
        The handler function or None if not found.
    """
    return _handlers.get(name)


def list_handlers() -> list[str]:
    """List all registered handler names."""
    return list(_handlers.keys())


# ============================================================================
# Built-in job handlers
# ============================================================================


@register_handler("echo")
def handle_echo(job_id: str, args: list[str]) -> str:
    """Return the arguments joined by spaces."""
    return " ".join(args)


@register_handler("sleep")
async def handle_sleep(job_id: str, args: list[str]) -> str:
    """
    Sleep for ``args[0]`` seconds (default 1).

    Useful for exercising the worker timeout.
    """
    duration = float(args[0]) if args else 1.0

    logger.info(
        "Sleep job starting",
        extra={"job_id": job_id, "duration": duration}
    )

    await asyncio.sleep(duration)
    return f"slept for {duration}s"


@register_handler("fail")
def handle_fail(job_id: str, args: list[str]) -> str:
    """Always raise, with the arguments as the error message."""
    raise RuntimeError(" ".join(args) or f"Intentional failure of {job_id}")


def call_handler(
    handler: JobHandler,
    job_id: str,
    args: Sequence[str],
) -> FinishedStatus | FailedStatus:
    """
    Invoke a handler in the calling thread and convert its outcome.

    Coroutine functions get an event loop of their own. Never raises:
    anything the handler raises, ``SystemExit`` and ``KeyboardInterrupt``
    included, becomes FAILED with the exception text as message and the
    formatted traceback as backtrace.

    Args:
        handler: The handler to call.
        job_id: Id of the job being executed.
        args: Job arguments, passed as a fresh list.

    Returns:
        FINISHED with the handler's return value, or FAILED.
    """
    try:
        if inspect.iscoroutinefunction(handler):
            result = asyncio.run(handler(job_id, list(args)))
        else:
            result = handler(job_id, list(args))

        if result is not None and not isinstance(result, str):
            raise TypeError(
                f"Handler returned {type(result).__name__}, expected str or None"
            )

    except BaseException as e:
        logger.warning(
            "Handler raised exception",
            extra={"job_id": job_id, "error": str(e) or type(e).__name__}
        )
        return FailedStatus(
            message=str(e) or type(e).__name__,
            backtrace=traceback.format_exc(),
        )

    return FinishedStatus(result=result)


def start_handler(
    handler: JobHandler,
    job_id: str,
    args: Sequence[str],
) -> asyncio.Future:
    """
    Run a handler on a dedicated daemon thread.

    Must be called from a running event loop. The returned future
    resolves on that loop with the handler's terminal status. Nothing
    waits for or cancels the thread, so a handler that never returns
    neither blocks later jobs nor keeps the process alive.

    Args:
        handler: The handler to call.
        job_id: Id of the job being executed.
        args: Job arguments.

    Returns:
        Future of FINISHED or FAILED.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()
    args = list(args)

    def report(outcome: FinishedStatus | FailedStatus) -> None:
        if not future.done():
            future.set_result(outcome)

    def target() -> None:
        outcome = call_handler(handler, job_id, args)
        try:
            loop.call_soon_threadsafe(report, outcome)
        except RuntimeError:
            # The worker's loop has closed
            logger.debug(
                "Dropping handler outcome after loop shutdown",
                extra={"job_id": job_id, "status": outcome.state}
            )

    context = contextvars.copy_context()
    thread = threading.Thread(
        target=context.run,
        args=(target,),
        name=f"job-{job_id}",
        daemon=True,
    )
    thread.start()
    return future


async def run_handler(
    handler: JobHandler,
    job_id: str,
    args: Sequence[str],
) -> FinishedStatus | FailedStatus:
    """Run a handler on its own thread and wait for its terminal status."""
    return await start_handler(handler, job_id, args)
