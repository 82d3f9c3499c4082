"""
Tests for voice input listening and user stop.
"""

import asyncio
import pytest

from family_finance.agents import ListenResult, VoiceInput


async def _finite(*partials):
    for partial in partials:
        await asyncio.sleep(0)
        yield partial


async def _then_hang(*partials):
    for partial in partials:
        yield partial
    await asyncio.Event().wait()


class TestVoiceInput:
    """Tests for VoiceInput.listen."""

    @pytest.mark.asyncio
    async def test_stream_end_returns_last_partial(self):
        """Test the final partial is the transcript."""
        seen = []

        result = await VoiceInput().listen(
            _finite("paid", "paid fifty", "paid fifty for lunch"),
            asyncio.Event(),
            on_partial=seen.append,
        )

        assert result == ListenResult(text="paid fifty for lunch", cancelled=False)
        assert seen == ["paid", "paid fifty", "paid fifty for lunch"]

    @pytest.mark.asyncio
    async def test_stop_returns_captured_partial(self):
        """Test stopping keeps what was heard so far."""
        stop = asyncio.Event()

        def on_partial(text):
            if text == "received two hundred":
                stop.set()

        result = await asyncio.wait_for(
            VoiceInput().listen(
                _then_hang("received", "received two hundred"),
                stop,
                on_partial=on_partial,
            ),
            timeout=5,
        )

        assert result.cancelled is True
        assert result.text == "received two hundred"
        assert result.has_text is True

    @pytest.mark.asyncio
    async def test_stop_before_any_partial(self):
        """Test an early stop yields an empty transcript."""
        stop = asyncio.Event()
        stop.set()

        result = await asyncio.wait_for(
            VoiceInput().listen(_then_hang(), stop),
            timeout=5,
        )

        assert result.cancelled is True
        assert result.has_text is False

    @pytest.mark.asyncio
    async def test_recognizer_failure_propagates(self):
        """Test errors from the partial stream reach the caller."""
        async def broken():
            yield "hel"
            raise RuntimeError("microphone unavailable")

        with pytest.raises(RuntimeError, match="microphone unavailable"):
            await VoiceInput().listen(broken(), asyncio.Event())


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
