"""Per-path debouncing of document change notifications."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from rich.console import Console
from rich.markup import escape

console = Console(stderr=True)

UpdateCallback = Callable[[str], Awaitable[None]]


class UpdateDebouncer:
    """Coalesces bursts of change events into one callback per path.

    Every ``schedule(path)`` cancels the pending call for that path and starts
    a new quiet period. Must be used from inside a running event loop.

    Args:
        callback: Awaited with the path once the quiet period ends.
        delay: Quiet period in seconds.
    """

    def __init__(self, callback: UpdateCallback, delay: float = 0.5) -> None:
        self._callback = callback
        self._delay = delay
        self._pending: dict[str, asyncio.Task[None]] = {}

    @property
    def pending(self) -> list[str]:
        """Paths with a scheduled, not yet started callback."""
        return sorted(self._pending)

    def schedule(self, path: str) -> None:
        """(Re)start the quiet period for path."""
        existing = self._pending.pop(path, None)
        if existing is not None:
            existing.cancel()
        self._pending[path] = asyncio.get_running_loop().create_task(self._fire_later(path))

    async def flush(self) -> None:
        """Run every pending callback now, in path order."""
        paths = self.pending
        for path in paths:
            self._pending.pop(path).cancel()
        for path in paths:
            await self._run(path)

    def cancel_all(self) -> None:
        for task in self._pending.values():
            task.cancel()
        self._pending.clear()

    async def _fire_later(self, path: str) -> None:
        await asyncio.sleep(self._delay)
        # No await between here and the callback start, so a later schedule()
        # can no longer cancel this run.
        self._pending.pop(path, None)
        await self._run(path)

    async def _run(self, path: str) -> None:
        try:
            await self._callback(path)
        except Exception as exc:  # noqa: BLE001
            console.print(f"[yellow]Warning[/yellow]: update of {escape(path)} failed: {exc}")
