"""
Voice Input

Speech recognition itself happens elsewhere (the device recognizer, or a
recorded clip sent to FinanceAssistant.transcribe_audio). This module
consumes a stream of cumulative partial transcripts and supports a
user-triggered stop.

CANCELLATION: stopping is cooperative. When the stop event is set, the
pending wait for the next partial is cancelled and the last partial that
was captured is returned. Stopping is a normal outcome, not an error.
"""

import asyncio
import contextlib
from collections.abc import AsyncIterable, Callable
from typing import Optional

import structlog
from pydantic import BaseModel


logger = structlog.get_logger(__name__)


class ListenResult(BaseModel):
    """Transcript captured by one listen call."""

    text: str = ""
    cancelled: bool = False

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())


class VoiceInput:
    """Listens to a partial-transcript stream until it ends or the user stops."""

    async def listen(
        self,
        partials: AsyncIterable[str],
        stop: asyncio.Event,
        on_partial: Optional[Callable[[str], None]] = None,
    ) -> ListenResult:
        """
        Consume partial transcripts.

        Args:
            partials: Cumulative transcripts; the last one is the full text
            stop: Set by the user to end listening early
            on_partial: Called with every partial as it arrives

        Returns:
            ListenResult with the latest transcript and whether the user stopped
        """
        latest = ""
        iterator = partials.__aiter__()
        stop_task = asyncio.ensure_future(stop.wait())

        try:
            while True:
                next_task = asyncio.ensure_future(iterator.__anext__())
                done, _ = await asyncio.wait(
                    {next_task, stop_task},
                    return_when=asyncio.FIRST_COMPLETED,
                )

                if next_task in done:
                    try:
                        latest = next_task.result()
                    except StopAsyncIteration:
                        return ListenResult(text=latest, cancelled=False)
                    if on_partial is not None:
                        on_partial(latest)
                    continue

                next_task.cancel()
                with contextlib.suppress(asyncio.CancelledError, StopAsyncIteration):
                    await next_task
                logger.info("voice_input_stopped", characters=len(latest))
                return ListenResult(text=latest, cancelled=True)
        finally:
            stop_task.cancel()
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                with contextlib.suppress(RuntimeError):
                    await aclose()
