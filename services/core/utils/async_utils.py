# services/core/utils/async_utils.py
from asgiref.sync import async_to_sync


@async_to_sync
async def run_async_in_new_loop(coro):
    """
    Runs a coroutine in a new event loop, making it safe to call from
    a sync context (Celery workers, management commands) that may or may
    not have a running loop.
    """
    return await coro


# Simplified alias for clarity
run_async = run_async_in_new_loop
