"""
Gemini-backed location suggestion and subject segmentation.

Both calls are one-shot and synchronous; run them off the UI thread (see
``worker.py``). ``suggest_location`` never raises: any failure, including a
missing API key, yields ``FALLBACK_LOCATION``. ``detect_main_subject``
returns None when no key is configured or no mask comes back, and raises
``SuggestionFailure`` when the service call itself fails.
"""

import logging
from typing import Any

from google import genai
from google.genai import types
from google.genai.types import Modality

from layout_studio.config import (
    FALLBACK_LOCATION, LOCATION_MODEL, LOCATION_PROMPT, SUBJECT_MODEL, SUBJECT_PROMPT,
    api_key,
)
from layout_studio.errors import SuggestionFailure
from layout_studio.image_io import encode_data_uri

logger = logging.getLogger(__name__)


def _make_client(key: str) -> genai.Client:
    return genai.Client(api_key=key)


def _first_inline_image(response: Any) -> tuple[bytes, str] | None:
    """Return (bytes, mime) of the first inline image part in a response."""
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline and getattr(inline, "data", None):
                return inline.data, getattr(inline, "mime_type", None) or "image/png"
    return None


def suggest_location(data: bytes, mime_type: str) -> str:
    """Ask Gemini for a short, friendly place name for the photo."""
    key = api_key()
    if not key:
        logger.warning("GEMINI_API_KEY / API_KEY is not set. Using fallback location.")
        return FALLBACK_LOCATION
    try:
        client = _make_client(key)
        response = client.models.generate_content(
            model=LOCATION_MODEL,
            contents=[
                types.Part.from_bytes(data=data, mime_type=mime_type),
                LOCATION_PROMPT,
            ],
        )
        text = (response.text or "").strip()
    except Exception as exc:
        logger.error("Gemini location suggestion failed: %s", exc)
        return FALLBACK_LOCATION

    if text.startswith('"'):
        text = text[1:]
    if text.endswith('"'):
        text = text[:-1]
    return text or FALLBACK_LOCATION


def detect_main_subject(data: bytes, mime_type: str) -> str | None:
    """Ask Gemini for a black/white subject mask; returns it as a data URI."""
    key = api_key()
    if not key:
        logger.warning("GEMINI_API_KEY / API_KEY is not set. Subject detection unavailable.")
        return None
    try:
        client = _make_client(key)
        response = client.models.generate_content(
            model=SUBJECT_MODEL,
            contents=[
                types.Part.from_bytes(data=data, mime_type=mime_type),
                SUBJECT_PROMPT,
            ],
            config=types.GenerateContentConfig(response_modalities=[Modality.IMAGE]),
        )
    except Exception as exc:
        logger.error("Gemini subject detection failed: %s", exc)
        raise SuggestionFailure(str(exc)) from exc

    picked = _first_inline_image(response)
    if picked is None:
        logger.info("Gemini returned no mask image")
        return None
    mask_bytes, mask_mime = picked
    return encode_data_uri(mask_bytes, mask_mime)
