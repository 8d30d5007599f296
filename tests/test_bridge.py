import base64

import pytest
import requests

from conftest import FakeResponse, FakeSession, FakeVisionClient, quadrant_frame
from plantcare.exceptions import DiagnosisError, VisionServiceError
from plantcare.scan import ExternalAnalysisBridge, split_diagnosis
from plantcare.scan.bridge import PROMPTS
from plantcare.services import VisionClient


def gemini_reply(text):
    return {'candidates': [{'content': {'parts': [{'text': text}]}}]}


class TestSplitDiagnosis:

    def test_first_three_lines_are_the_diagnosis(self):
        diagnosis, treatment = split_diagnosis("A\n\nB\nC\n\nD\nE")
        assert diagnosis == "A\nB\nC"
        assert treatment == "D\nE"

    def test_short_reply_has_no_treatment(self):
        assert split_diagnosis("Healthy leaf") == ("Healthy leaf", "")

    def test_empty(self):
        assert split_diagnosis("") == ("", "")


class TestExternalAnalysisBridge:

    def test_sends_jpeg_and_localised_prompt(self):
        client = FakeVisionClient()
        bridge = ExternalAnalysisBridge(client)

        result = bridge.diagnose(quadrant_frame(), language='kn', session_id=4)

        call = client.calls[0]
        assert call['prompt'] == PROMPTS['kn']
        assert call['mime_type'] == 'image/jpeg'
        assert base64.b64decode(call['image']).startswith(b'\xff\xd8')
        assert result.language == 'kn'
        assert result.session_id == 4
        assert not bridge.is_analyzing

    def test_unknown_language_uses_english_prompt(self):
        client = FakeVisionClient()
        ExternalAnalysisBridge(client).diagnose(quadrant_frame(), language='xx')
        assert client.calls[0]['prompt'] == PROMPTS['en']

    def test_empty_reply_is_a_failure(self):
        bridge = ExternalAnalysisBridge(FakeVisionClient(reply="   "))
        with pytest.raises(DiagnosisError):
            bridge.diagnose(quadrant_frame())

    @pytest.mark.parametrize('reply', [None, {'text': 'Early blight'}, 42])
    def test_non_text_reply_is_a_failure(self, reply):
        bridge = ExternalAnalysisBridge(FakeVisionClient(reply=reply))
        with pytest.raises(DiagnosisError):
            bridge.diagnose(quadrant_frame())
        assert not bridge.is_analyzing

    def test_service_error_is_localised(self):
        bridge = ExternalAnalysisBridge(FakeVisionClient(error=VisionServiceError("HTTP 500")))
        with pytest.raises(DiagnosisError) as info:
            bridge.diagnose(quadrant_frame(), language='kn')
        assert info.value.message == 'ವಿಶ್ಲೇಷಣೆ ವಿಫಲವಾಗಿದೆ. ದಯವಿಟ್ಟು ಮತ್ತೆ ಪ್ರಯತ್ನಿಸಿ.'
        assert not bridge.is_analyzing

    def test_result_to_dict(self):
        result = ExternalAnalysisBridge(FakeVisionClient()).diagnose(quadrant_frame())
        data = result.to_dict()
        assert set(data) == {'raw_text', 'diagnosis', 'treatment', 'language', 'session_id', 'created_at'}


class TestVisionClient:

    def test_request_shape(self):
        session = FakeSession(FakeResponse(gemini_reply("Leaf spot")))
        client = VisionClient('key-123', model='gemini-2.5-flash', session=session)

        assert client.generate("What is this?", "aGVsbG8=") == "Leaf spot"

        call = session.calls[0]
        assert call['url'].endswith('/gemini-2.5-flash:generateContent')
        assert call['params'] == {'key': 'key-123'}
        parts = call['json']['contents'][0]['parts']
        assert parts[0] == {'text': "What is this?"}
        assert parts[1]['inline_data'] == {'mime_type': 'image/jpeg', 'data': 'aGVsbG8='}

    def test_text_only_prompt(self):
        session = FakeSession(FakeResponse(gemini_reply("Water in the morning")))
        VisionClient('key', session=session).generate("Advice?")
        assert len(session.calls[0]['json']['contents'][0]['parts']) == 1

    def test_missing_key(self):
        session = FakeSession(FakeResponse(gemini_reply("x")))
        with pytest.raises(VisionServiceError):
            VisionClient('', session=session).generate("Hi")
        assert session.calls == []

    @pytest.mark.parametrize('session', [
        FakeSession(error=requests.ConnectionError("offline")),
        FakeSession(FakeResponse({}, status_code=500)),
        FakeSession(FakeResponse(ValueError("not json"))),
        FakeSession(FakeResponse({'error': {'message': 'API key not valid'}})),
        FakeSession(FakeResponse({'candidates': []})),
        FakeSession(FakeResponse(gemini_reply("  ")))
    ])
    def test_failures(self, session):
        with pytest.raises(VisionServiceError):
            VisionClient('key', session=session).generate("Hi")
