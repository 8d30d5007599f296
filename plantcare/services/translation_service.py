# =============================================================================
# PlantCare AI Backend
# services/translation_service.py - Cached Translation
#
# Google Translate through deep-translator with an in-process cache and a
# script check that flags replies not written in the target language's
# script (e.g. Kannada text that came back in Latin letters).
# =============================================================================

import re
import logging
import threading
from collections import OrderedDict
from typing import Callable, List, Optional, Tuple

from deep_translator import GoogleTranslator

logger = logging.getLogger(__name__)

MAX_CACHE_SIZE = 1000

SCRIPT_RANGES = {
    'kn': re.compile(r'[\u0C80-\u0CFF]'),   # Kannada
    'hi': re.compile(r'[\u0900-\u097F]'),   # Devanagari (Hindi)
    'ta': re.compile(r'[\u0B80-\u0BFF]'),   # Tamil
    'te': re.compile(r'[\u0C00-\u0C7F]'),   # Telugu
    'bn': re.compile(r'[\u0980-\u09FF]'),   # Bengali
    'mr': re.compile(r'[\u0900-\u097F]'),   # Devanagari (Marathi)
    'gu': re.compile(r'[\u0A80-\u0AFF]'),   # Gujarati
    'ml': re.compile(r'[\u0D00-\u0D7F]'),   # Malayalam
    'pa': re.compile(r'[\u0A00-\u0A7F]'),   # Gurmukhi (Punjabi)
    'ur': re.compile(r'[\u0600-\u06FF]'),   # Arabic (Urdu)
    'or': re.compile(r'[\u0B00-\u0B7F]'),   # Odia
}


def is_text_in_expected_script(text: str, language: str) -> bool:
    """True if the text contains characters of the language's script."""
    if not text or language == 'en':
        return True
    pattern = SCRIPT_RANGES.get(language)
    if pattern is None:
        return True
    return bool(pattern.search(text))


def _google_translator(target: str):
    return GoogleTranslator(source='auto', target=target)


class TranslationService:
    """
    Translate short UI/advice strings with caching.

    The cache keeps the most recently used ``max_cache_size`` entries.

    Args:
        translator_factory: Callable(target) -> object with translate(text)
        max_cache_size: Cache capacity
    """

    def __init__(self, translator_factory: Optional[Callable] = None,
                 max_cache_size: int = MAX_CACHE_SIZE):
        self.translator_factory = translator_factory or _google_translator
        self.max_cache_size = max_cache_size
        self._cache = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def cache_key(text: str, target: str) -> str:
        return f"{text}::{target}"

    def translate(self, text: str, target: str) -> Tuple[str, bool]:
        """
        Returns:
            tuple: (translated text, script_ok). On failure the original
                text comes back with script_ok False.
        """
        if not text or not target:
            return text, True

        key = self.cache_key(text, target)
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
                return self._cache[key], True

        try:
            translated = self.translator_factory(target).translate(text) or text
        except Exception as e:
            logger.error(f"Translation to {target} failed: {e}")
            return text, False

        with self._lock:
            self._cache[key] = translated
            self._cache.move_to_end(key)
            while len(self._cache) > self.max_cache_size:
                self._cache.popitem(last=False)

        return translated, is_text_in_expected_script(translated, target)

    def translate_many(self, texts: List[str], target: str) -> List[Tuple[str, bool]]:
        return [self.translate(text, target) for text in texts]

    def clear_cache(self):
        with self._lock:
            self._cache.clear()

    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)
