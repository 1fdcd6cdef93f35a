# ABOUTME: Cooperative cancellation token passed through the search call chain.
# ABOUTME: Searches check it at loop heads and race in-flight provider calls against it.

import asyncio


class CancellationToken:
    """Explicit, shareable cancellation flag.

    cancel() may be called from any coroutine on the same event loop, or
    before the loop starts. wait() resolves once the token is cancelled.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._event: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        if self._event is not None:
            self._event.set()

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        await self._event.wait()
