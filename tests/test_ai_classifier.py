import json

import pytest
import requests

from ai_classifier import AIClassifierError, ChatCompletionClassifier, build_prompt

BATCH = [{"id": "a1", "date": "2024-01-05", "description": "Netflix", "amount": 15.0, "type": "expense"}]


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []
        self.closed = False

    def close(self):
        self.closed = True

    def post(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


def envelope(content):
    return {"choices": [{"message": {"content": content}}]}


def test_prompt_lists_taxonomy_and_batch_size():
    prompt = build_prompt(BATCH)
    assert "Savings (SIPs, Mutual Funds" in prompt
    assert "Other Income" in prompt
    assert "exactly 1 objects" in prompt
    assert "Netflix ($15.0) [expense]" in prompt


def test_missing_key_fails_without_calling_out():
    session = FakeSession()
    with pytest.raises(AIClassifierError):
        ChatCompletionClassifier(api_key=None, session=session)(BATCH)
    assert session.requests == []


def test_parses_fenced_json():
    answer = [{"category": "Entertainment", "subcategory": "Netflix", "type": "expense", "confidence": 0.95}]
    session = FakeSession(FakeResponse(envelope("```json\n" + json.dumps(answer) + "\n```")))
    classifier = ChatCompletionClassifier(api_key="sk-test", api_url="http://ai.local/v1", timeout=5, session=session)

    assert classifier(BATCH) == answer
    url, kwargs = session.requests[0]
    assert url == "http://ai.local/v1"
    assert kwargs["timeout"] == 5
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(error=requests.Timeout("timed out")),
        FakeSession(FakeResponse({}, status=401)),
        FakeSession(FakeResponse({"choices": []})),
        FakeSession(FakeResponse(envelope("Sorry, I cannot help with that."))),
    ],
)
def test_failures_raise_classifier_error(session):
    with pytest.raises(AIClassifierError):
        ChatCompletionClassifier(api_key="sk-test", session=session)(BATCH)


def test_close_releases_the_session():
    session = FakeSession()
    ChatCompletionClassifier(api_key="sk-test", session=session).close()
    assert session.closed
