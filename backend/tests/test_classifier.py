"""
Tests for the Azure OpenAI behavior classifier.
"""
import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from examguard.proctoring import ClassifierError
from examguard.utils.openai_service import BehaviorAnalysisService

FRAME = "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQ=="


def completion(content):
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    return response


def make_service(content=None, error=None):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=completion(content), side_effect=error)
    return BehaviorAnalysisService(client=client, deployment="vision-test"), client


class TestParseVerdict:
    """Tests for parse_verdict"""

    def setup_method(self):
        self.service, _ = make_service()

    def test_suspicious(self):
        verdict = self.service.parse_verdict('{"isSuspicious": true, "reason": "Multiple faces detected."}')

        assert verdict.is_suspicious is True
        assert verdict.reason == "Multiple faces detected."

    def test_clean_without_reason(self):
        verdict = self.service.parse_verdict('{"isSuspicious": false}')

        assert verdict.is_suspicious is False
        assert verdict.reason == "No suspicious behavior detected."

    def test_snake_case_key(self):
        assert self.service.parse_verdict('{"is_suspicious": true, "reason": "Phone"}').is_suspicious is True

    @pytest.mark.parametrize("response", [
        None,
        "",
        "not json",
        "[1, 2]",
        '{"reason": "missing flag"}',
        '{"isSuspicious": "yes", "reason": "string flag"}',
        '{"isSuspicious": true, "reason": "   "}',
    ])
    def test_unusable_responses(self, response):
        with pytest.raises(ClassifierError):
            self.service.parse_verdict(response)


@pytest.mark.asyncio
class TestClassify:
    """Tests for classify"""

    async def test_sends_frame_and_context(self):
        service, client = make_service(json.dumps({"isSuspicious": True, "reason": "Looking away"}))
        verdict = await service.classify(FRAME, 42, 3)

        assert verdict.reason == "Looking away"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "vision-test"
        assert kwargs["response_format"] == {"type": "json_object"}
        user_content = kwargs["messages"][1]["content"]
        assert "Time elapsed: 42 seconds" in user_content[0]["text"]
        assert "Current Question: 3" in user_content[0]["text"]
        assert user_content[1]["image_url"]["url"] == FRAME

    async def test_api_error_becomes_classifier_error(self):
        service, _ = make_service(error=RuntimeError("rate limited"))

        with pytest.raises(ClassifierError, match="rate limited"):
            await service.classify(FRAME, 1, 1)

    async def test_unconfigured_client(self):
        service, _ = make_service()
        service.client = None

        with pytest.raises(ClassifierError):
            await service.classify(FRAME, 1, 1)
