"""
External analysis bridge
========================
Sends one captured frame, with a language specific instruction prompt, to
the generative AI collaborator and splits the reply into a short diagnosis
and the treatment text.

The split is positional (first three non-blank lines, then the rest). The
model's prose format is not guaranteed, so callers should treat the two
sections as a best-effort presentation of ``raw_text``.
"""

import base64
import logging
import threading
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Optional

from plantcare.constants import DEFAULT_LANGUAGE, JPEG_QUALITY
from plantcare.exceptions import DiagnosisError, PlantCareError
from plantcare.scan.frame import frame_to_jpeg

logger = logging.getLogger(__name__)

DIAGNOSIS_LINES = 3

PROMPTS = {
    'en': (
        "Analyze this plant leaf and identify any diseases. Please provide:\n"
        "1. Disease name (if present)\n"
        "2. Severity (mild/moderate/severe/healthy)\n"
        "3. Symptoms observed\n"
        "4. Treatment and prevention recommendations\n"
        "Provide clear, actionable advice for farmers."
    ),
    'kn': (
        "ಈ ಸಸ್ಯದ ಎಲೆಯನ್ನು ವಿಶ್ಲೇಷಿಸಿ ಮತ್ತು ಯಾವುದೇ ರೋಗಗಳನ್ನು ಗುರುತಿಸಿ. ದಯವಿಟ್ಟು ನೀಡಿ:\n"
        "1. ರೋಗದ ಹೆಸರು (ಇದ್ದರೆ)\n"
        "2. ತೀವ್ರತೆ (ಮಧ್ಯಮ/ತೀವ್ರ/ಆರೋಗ್ಯಕರ)\n"
        "3. ಲಕ್ಷಣಗಳು\n"
        "4. ಚಿಕಿತ್ಸೆ ಮತ್ತು ತಡೆಗಟ್ಟುವಿಕೆ ಸಲಹೆಗಳು\n"
        "ಸ್ಪಷ್ಟ ಮತ್ತು ಕ್ರಿಯಾಶೀಲ ಸಲಹೆಗಳನ್ನು ನೀಡಿ."
    )
}


def get_prompt(language: str) -> str:
    return PROMPTS.get(language, PROMPTS[DEFAULT_LANGUAGE])


def split_diagnosis(text: str):
    """
    Split free text into (diagnosis, treatment).

    Blank lines are dropped; the first three remaining lines form the
    diagnosis, everything after them the treatment.
    """
    lines = [line for line in (text or '').split('\n') if line.strip()]
    return (
        '\n'.join(lines[:DIAGNOSIS_LINES]),
        '\n'.join(lines[DIAGNOSIS_LINES:])
    )


@dataclass
class DiagnosisResult:
    raw_text: str
    diagnosis: str
    treatment: str
    language: str = DEFAULT_LANGUAGE
    session_id: Optional[int] = None
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self):
        return asdict(self)


class ExternalAnalysisBridge:
    """
    Forwards frames to a VisionClient.

    Args:
        client: Object with ``generate(prompt, image_base64, mime_type) -> str``
        jpeg_quality: JPEG quality of the uploaded frame
    """

    def __init__(self, client, jpeg_quality: int = JPEG_QUALITY):
        self.client = client
        self.jpeg_quality = jpeg_quality
        self._in_flight = 0
        self._lock = threading.Lock()

    @property
    def is_analyzing(self) -> bool:
        with self._lock:
            return self._in_flight > 0

    def encode_frame(self, frame) -> str:
        """JPEG + base64 payload for one frame."""
        jpeg = frame_to_jpeg(frame, quality=self.jpeg_quality)
        return base64.b64encode(jpeg).decode('utf-8')

    def diagnose(self, frame, language: str = DEFAULT_LANGUAGE,
                 session_id: Optional[int] = None) -> DiagnosisResult:
        """
        Run one AI diagnosis. No automatic retry.

        Raises:
            DiagnosisError: With a message in ``language``
        """
        with self._lock:
            self._in_flight += 1

        try:
            payload = self.encode_frame(frame)
            text = self.client.generate(get_prompt(language), payload, 'image/jpeg')
            if not isinstance(text, str) or not text.strip():
                logger.warning(f"Unusable diagnosis reply: {type(text).__name__}")
                raise DiagnosisError(language=language)

            diagnosis, treatment = split_diagnosis(text)
            logger.info(f"Diagnosis received ({len(text)} chars, session {session_id})")

            return DiagnosisResult(
                raw_text=text,
                diagnosis=diagnosis,
                treatment=treatment,
                language=language,
                session_id=session_id
            )
        except DiagnosisError:
            raise
        except (PlantCareError, ValueError, OSError) as e:
            logger.warning(f"Diagnosis failed: {e}")
            raise DiagnosisError(language=language) from e
        finally:
            with self._lock:
                self._in_flight -= 1
