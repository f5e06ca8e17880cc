"""
Deepgram transcription client.
Turns a recorded audio payload into plain text for voice notes.
Falls back to a fixed mock transcript when no API key is configured.
"""
import logging
from typing import Optional
import httpx
from ..core.config import settings
from ..core.exceptions import TranscriptionError

logger = logging.getLogger(__name__)

MOCK_TRANSCRIPT = (
    "Mock transcription: This is a placeholder transcription. "
    "Configure DEEPGRAM_API_KEY in your .env file to enable real transcription."
)


class TranscriptionClient:
    """HTTP client for the Deepgram ``/v1/listen`` endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[int] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.DEEPGRAM_API_KEY
        self.api_url = api_url or settings.DEEPGRAM_API_URL
        self.timeout = timeout or settings.TRANSCRIPTION_TIMEOUT
        self.transport = transport

    @property
    def mock_mode(self) -> bool:
        return not self.api_key

    def transcribe(self, audio: bytes, content_type: str = "audio/webm") -> str:
        """
        Send audio to Deepgram and return the transcript of the first channel.
        Raises TranscriptionError on HTTP failure or when no transcript comes back.
        """
        if self.mock_mode:
            logger.warning("Deepgram API key not configured. Using mock transcription.")
            return MOCK_TRANSCRIPT

        headers = {
            "Authorization": f"Token {self.api_key}",
            "Content-Type": content_type or "audio/webm",
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(self.api_url, content=audio, headers=headers)
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.error("Transcription error: %s", exc)
            raise TranscriptionError(
                f"Transcription failed: Deepgram API error: {exc.response.reason_phrase}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Transcription error: %s", exc)
            raise TranscriptionError(f"Transcription failed: {exc}") from exc

        transcript = _first_transcript(payload)
        if not transcript:
            raise TranscriptionError("Transcription failed: No transcription returned from Deepgram")
        return transcript


def _first_transcript(payload: dict) -> str:
    try:
        return payload["results"]["channels"][0]["alternatives"][0].get("transcript") or ""
    except (KeyError, IndexError, TypeError):
        return ""


transcription_client = TranscriptionClient()


def get_transcription_client() -> TranscriptionClient:
    return transcription_client
