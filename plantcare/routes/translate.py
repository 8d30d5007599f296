# =============================================================================
# PlantCare AI Backend
# routes/translate.py - Translation Route
#
# Translates UI and advice strings for the client, reporting whether the
# result is actually in the target script.
# =============================================================================

from flask import Blueprint, current_app

from plantcare.extensions import limiter
from plantcare.utils import success_response, error_response
from plantcare.decorators import validate_json

# Create blueprint
translate_bp = Blueprint('translate', __name__)

MAX_TEXTS = 50


@translate_bp.route('', methods=['POST'])
@limiter.limit("30 per minute")
@validate_json('texts', 'target')
def translate(data):
    """
    Body:
        texts (list[str] | str): Strings to translate - required
        target (str): Target language code, e.g. 'kn' - required

    Returns:
        200: {"translations": [...], "script_ok": [...]}
    """
    texts = data['texts']
    if isinstance(texts, str):
        texts = [texts]
    if not isinstance(texts, list) or not all(isinstance(t, str) for t in texts):
        return error_response('texts must be a string or a list of strings', status_code=400)
    if len(texts) > MAX_TEXTS:
        return error_response(f'At most {MAX_TEXTS} texts per request', status_code=400)

    results = current_app.config['TRANSLATION_SERVICE'].translate_many(texts, data['target'])

    return success_response({
        'target': data['target'],
        'translations': [text for text, _ in results],
        'script_ok': [ok for _, ok in results]
    })
