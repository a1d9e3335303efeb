"""
tests/test_llm.py
Remote classifier contract: prompt, reply parsing, HTTP payloads.
urllib is patched — no network.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from smswatch.llm.anthropic_adapter import AnthropicClassifier
from smswatch.llm.base import RemoteClassifier
from smswatch.llm.ollama_adapter import OllamaClassifier
from smswatch.models.record import Category, OtpCandidate


class _StubClassifier(RemoteClassifier):
    """Returns a canned reply, or raises if given an exception."""

    model = 'stub'

    def __init__(self, reply):
        self.reply = reply
        self.prompts = []

    def is_configured(self):
        return True

    def complete(self, prompt):
        self.prompts.append(prompt)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


def _mock_urlopen(payload: dict) -> MagicMock:
    urlopen = MagicMock()
    urlopen.return_value.__enter__.return_value.read.return_value = json.dumps(payload).encode('utf-8')
    return urlopen


OTP = OtpCandidate(record_id=1, code='482913', confidence=0.85, pattern_name='Is-pattern 6-digit')


# ── REPLY PARSING ────────────────────────────────────────────

class TestParseReply:

    def test_plain_json(self):
        result = RemoteClassifier.parse_reply(
            '{"category":"delivery","summary":"Parcel shipped","confidence":0.9,"otp":null}'
        )
        assert result.category == Category.DELIVERY
        assert result.summary == 'Parcel shipped'
        assert result.confidence == pytest.approx(0.9)
        assert result.detected_otp is None
        assert result.source == 'remote'

    def test_fenced_json(self):
        text = '```json\n{"category":"spam","summary":"x","confidence":0.7,"otp":null}\n```'
        assert RemoteClassifier.parse_reply(text).category == Category.SPAM

    def test_chatter_around_object(self):
        text = 'Sure! {"category":"personal","summary":"hi","confidence":0.5,"otp":null} Hope this helps.'
        assert RemoteClassifier.parse_reply(text).category == Category.PERSONAL

    def test_unknown_category_maps_to_unknown(self):
        text = '{"category":"newsletter","summary":"","confidence":0.4,"otp":null}'
        assert RemoteClassifier.parse_reply(text).category == Category.UNKNOWN

    def test_category_case_insensitive(self):
        text = '{"category":"URGENT","summary":"","confidence":0.4,"otp":null}'
        assert RemoteClassifier.parse_reply(text).category == Category.URGENT

    def test_detected_otp_surfaced(self):
        text = '{"category":"otp","summary":"Login code","confidence":0.95,"otp":"A7K2Q9"}'
        assert RemoteClassifier.parse_reply(text).detected_otp == 'A7K2Q9'

    def test_literal_null_string_is_no_otp(self):
        text = '{"category":"personal","summary":"","confidence":0.5,"otp":"null"}'
        assert RemoteClassifier.parse_reply(text).detected_otp is None

    def test_confidence_clamped(self):
        text = '{"category":"spam","summary":"","confidence":1.7,"otp":null}'
        assert RemoteClassifier.parse_reply(text).confidence == 1.0

    @pytest.mark.parametrize('text', [
        '',
        'no json here',
        '{"category": "spam", "confidence": ',
        '{"category":"spam","summary":"","confidence":"high","otp":null}',
        '{}',
        '{"error": "overloaded"}',
        '{"summary": "no category", "confidence": 0.9}',
        '{"category": "spam", "summary": "no confidence"}',
    ])
    def test_malformed_returns_none(self, text):
        assert RemoteClassifier.parse_reply(text) is None


# ── PROMPT + CLASSIFY ────────────────────────────────────────

class TestRemoteClassify:

    def test_prompt_contains_sender_body_and_hint(self):
        prompt = _StubClassifier('').build_prompt('Your code is 482913', 'ACME', OTP)
        assert 'From: ACME' in prompt
        assert 'Message: Your code is 482913' in prompt
        assert 'Regex already extracted OTP: 482913 (confidence: 85%)' in prompt
        assert '"category":"<otp|marketing|personal|financial|delivery|urgent|spam>"' in prompt

    def test_prompt_without_otp_has_no_hint(self):
        prompt = _StubClassifier('').build_prompt('hello there', 'Sam', None)
        assert 'Regex already extracted' not in prompt

    def test_classify_parses_reply(self):
        stub = _StubClassifier('{"category":"financial","summary":"Card charged","confidence":0.8,"otp":null}')
        result = stub.classify('Card ending 1234 charged $5', 'BANK')
        assert result.category == Category.FINANCIAL
        assert len(stub.prompts) == 1

    def test_classify_swallows_transport_errors(self):
        assert _StubClassifier(OSError('connection reset')).classify('hello there', 'Sam') is None


# ── ANTHROPIC ────────────────────────────────────────────────

class TestAnthropicClassifier:

    def test_configured_needs_key_and_enabled(self):
        assert AnthropicClassifier(api_key='').is_configured() is False
        assert AnthropicClassifier(api_key='  ').is_configured() is False
        assert AnthropicClassifier(api_key='sk-test').is_configured() is True
        assert AnthropicClassifier(api_key='sk-test', enabled=False).is_configured() is False

    def test_request_shape(self):
        urlopen = _mock_urlopen({'content': [{'type': 'text', 'text': 'reply text'}]})
        clf = AnthropicClassifier(api_key='sk-test', model='m1', max_tokens=128, timeout_sec=7)

        with patch('urllib.request.urlopen', urlopen):
            assert clf.complete('the prompt') == 'reply text'

        req = urlopen.call_args[0][0]
        assert req.full_url == 'https://api.anthropic.com/v1/messages'
        assert req.get_header('X-api-key') == 'sk-test'
        assert req.get_header('Anthropic-version') == '2023-06-01'
        assert json.loads(req.data) == {
            'model': 'm1',
            'max_tokens': 128,
            'messages': [{'role': 'user', 'content': 'the prompt'}],
        }
        assert urlopen.call_args[1]['timeout'] == 7

    def test_end_to_end_classify(self):
        reply = '```json\n{"category":"otp","summary":"Login code","confidence":0.9,"otp":"991122"}\n```'
        urlopen = _mock_urlopen({'content': [{'type': 'text', 'text': reply}]})
        with patch('urllib.request.urlopen', urlopen):
            result = AnthropicClassifier(api_key='sk-test').classify('Use 991122 to log in', 'ACME')
        assert result.category == Category.OTP
        assert result.detected_otp == '991122'

    def test_empty_content_returns_none(self):
        urlopen = _mock_urlopen({'content': []})
        with patch('urllib.request.urlopen', urlopen):
            assert AnthropicClassifier(api_key='sk-test').classify('hello there', 'Sam') is None


# ── OLLAMA ───────────────────────────────────────────────────

class TestOllamaClassifier:

    def test_request_shape(self):
        urlopen = _mock_urlopen({'message': {'role': 'assistant', 'content': ' {"a": 1} '}})
        clf = OllamaClassifier(model='llama3.1:8b', host='http://localhost:11434/')

        with patch('urllib.request.urlopen', urlopen):
            assert clf.complete('p') == '{"a": 1}'

        req = urlopen.call_args[0][0]
        body = json.loads(req.data)
        assert req.full_url == 'http://localhost:11434/api/chat'
        assert body['model'] == 'llama3.1:8b'
        assert body['messages'] == [{'role': 'user', 'content': 'p'}]
        assert body['format'] == 'json'
        assert body['stream'] is False

    def test_is_available_matches_model_prefix(self):
        urlopen = _mock_urlopen({'models': [{'name': 'llama3.1:8b-instruct'}]})
        with patch('urllib.request.urlopen', urlopen):
            assert OllamaClassifier(model='llama3.1:8b').is_available() is True

    def test_is_available_false_when_unreachable(self):
        import urllib.error
        urlopen = MagicMock(side_effect=urllib.error.URLError('refused'))
        with patch('urllib.request.urlopen', urlopen):
            assert OllamaClassifier().is_available() is False
