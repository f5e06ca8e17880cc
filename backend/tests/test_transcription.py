"""Tests for the Deepgram transcription client."""
import json

import httpx
import pytest

from mediq.core.exceptions import TranscriptionError
from mediq.services.transcription import MOCK_TRANSCRIPT, TranscriptionClient

DEEPGRAM_URL = "https://api.deepgram.test/v1/listen?model=nova-2"


def _client(handler, api_key="dg-key"):
    return TranscriptionClient(
        api_key=api_key,
        api_url=DEEPGRAM_URL,
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


def _deepgram_body(transcript):
    return {"results": {"channels": [{"alternatives": [{"transcript": transcript, "confidence": 0.98}]}]}}


def test_mock_mode_without_api_key():
    client = TranscriptionClient(api_key="", api_url=DEEPGRAM_URL)
    assert client.mock_mode is True
    assert client.transcribe(b"audio") == MOCK_TRANSCRIPT


def test_returns_first_channel_transcript():
    captured = {}

    def handler(request):
        captured["auth"] = request.headers["Authorization"]
        captured["content_type"] = request.headers["Content-Type"]
        captured["body"] = request.content
        return httpx.Response(200, json=_deepgram_body("Patient reports mild headache."))

    client = _client(handler)
    assert client.transcribe(b"\x00\x01", content_type="audio/wav") == "Patient reports mild headache."
    assert captured == {"auth": "Token dg-key", "content_type": "audio/wav", "body": b"\x00\x01"}


def test_http_error_uses_reason_phrase():
    client = _client(lambda request: httpx.Response(401, json={"err_msg": "bad key"}))
    with pytest.raises(TranscriptionError, match="Deepgram API error: Unauthorized"):
        client.transcribe(b"audio")


def test_empty_transcript_is_an_error():
    client = _client(lambda request: httpx.Response(200, json=_deepgram_body("")))
    with pytest.raises(TranscriptionError, match="No transcription returned from Deepgram"):
        client.transcribe(b"audio")


def test_missing_results_is_an_error():
    client = _client(lambda request: httpx.Response(200, content=json.dumps({"metadata": {}})))
    with pytest.raises(TranscriptionError, match="No transcription returned"):
        client.transcribe(b"audio")


def test_transport_failure_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TranscriptionError, match="Transcription failed: connection refused"):
        _client(handler).transcribe(b"audio")
