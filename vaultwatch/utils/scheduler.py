# vaultwatch/utils/scheduler.py

"""
Timer capability for the tracking pipeline

Every delayed action in VaultWatch goes through a Scheduler so the event loop
dependency stays in one place. Timers are keyed by a hashable token; arming a
token that is already armed replaces the previous timer.
"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, Protocol, Set

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[Any]]


class Scheduler(Protocol):
    """Clock plus cancelable one-shot timers"""

    def now(self) -> int:
        """Current time in milliseconds since the epoch"""
        ...

    def after(self, delay: float, token: Hashable, callback: TimerCallback) -> Hashable:
        """Run ``callback`` once ``delay`` seconds from now; returns the token"""
        ...

    def cancel(self, token: Hashable) -> bool:
        """Cancel a pending timer; True if one was armed"""
        ...

    def is_armed(self, token: Hashable) -> bool:
        ...


class AsyncioScheduler:
    """Scheduler backed by ``loop.call_later``"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: Dict[Hashable, asyncio.TimerHandle] = {}
        self._tasks: Set[asyncio.Task] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> int:
        return int(time.time() * 1000)

    def after(self, delay: float, token: Hashable, callback: TimerCallback) -> Hashable:
        self.cancel(token)
        self._handles[token] = self.loop.call_later(
            max(0.0, delay), self._fire, token, callback
        )
        return token

    def cancel(self, token: Hashable) -> bool:
        handle = self._handles.pop(token, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def is_armed(self, token: Hashable) -> bool:
        return token in self._handles

    def _fire(self, token: Hashable, callback: TimerCallback):
        self._handles.pop(token, None)
        task = self.loop.create_task(self._run(token, callback))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, token: Hashable, callback: TimerCallback):
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Timer callback {token!r} failed: {e}", exc_info=True)

    def cancel_all(self) -> int:
        """Cancel every armed timer; returns how many were armed"""
        count = len(self._handles)
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        return count

    async def drain(self, timeout: float = 10.0):
        """Wait for callbacks that already started running"""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(f"Abandoned {len(pending)} timer callbacks on shutdown")

    def get_stats(self) -> Dict[str, Any]:
        return {
            'armed_timers': len(self._handles),
            'running_callbacks': len(self._tasks),
        }
