"""Helpers for driving the assistant through a mock HTTP transport."""

import json

import httpx


def completion_envelope(content):
    """A chat completion response body whose first choice carries content."""
    if not isinstance(content, str) and content is not None:
        content = json.dumps(content)
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}},
        ],
    }


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it served."""

    def __init__(self, responder):
        self.requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return responder(request)

        super().__init__(handler)


def replying(content, status_code: int = 200) -> RecordingTransport:
    """Transport that answers every request with one completion."""
    return RecordingTransport(
        lambda request: httpx.Response(status_code, json=completion_envelope(content))
    )
