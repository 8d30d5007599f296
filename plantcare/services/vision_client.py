# =============================================================================
# PlantCare AI Backend
# services/vision_client.py - Generative AI Client
#
# Thin client for the Gemini generateContent REST endpoint. Sends a text
# prompt with an optional inline base64 image and returns the reply text.
# =============================================================================

import logging
from typing import Optional

import requests

from plantcare.exceptions import VisionServiceError

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL = "gemini-2.5-flash"


class VisionClient:
    """
    Generative AI vision/text collaborator.

    Args:
        api_key: Gemini API key
        model: Model name
        timeout: Request timeout in seconds
        session: Optional requests.Session (tests inject a fake)
    """

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL,
                 timeout: float = 60.0, session=None):
        self.api_key = api_key
        self.model = model or DEFAULT_MODEL
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{GEMINI_API_BASE}/{self.model}:generateContent"

    def generate(self, prompt: str, image_base64: Optional[str] = None,
                 mime_type: str = 'image/jpeg') -> str:
        """
        Ask the model about an (optional) image.

        Returns:
            str: Free text reply

        Raises:
            VisionServiceError: Missing key, HTTP/network error, or an
                empty/malformed reply
        """
        if not self.api_key:
            raise VisionServiceError("GEMINI_API_KEY not configured")

        parts = [{"text": prompt}]
        if image_base64:
            parts.append({
                "inline_data": {
                    "mime_type": mime_type,
                    "data": image_base64
                }
            })

        payload = {"contents": [{"parts": parts}]}

        try:
            response = self.session.post(
                self.endpoint,
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"Gemini request failed: {e}")
            raise VisionServiceError(f"AI service request failed: {e}") from e
        except ValueError as e:
            raise VisionServiceError("AI service returned invalid JSON") from e

        if 'error' in data:
            message = data['error'].get('message', 'unknown error')
            raise VisionServiceError(f"AI service error: {message}")

        return extract_text(data)


def extract_text(data: dict) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = data.get('candidates') or []
    if not candidates:
        raise VisionServiceError("AI service returned no candidates")

    parts = (candidates[0].get('content') or {}).get('parts') or []
    text = ''.join(part.get('text', '') for part in parts).strip()
    if not text:
        raise VisionServiceError("AI service returned an empty reply")
    return text
