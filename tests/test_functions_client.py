"""Tests for the hosted functions client (HTTP faked with MockTransport)."""

import asyncio
import json

import httpx
import pytest

from survey_studio.errors import GenerationError, TemplateCloneError
from survey_studio.functions_client import FunctionsClient
from survey_studio.surveys.schema import make_question


BASE = "http://functions.test/functions/v1"


def _client(handler) -> FunctionsClient:
    return FunctionsClient(BASE, token="secret", transport=httpx.MockTransport(handler))


def _questions(n: int):
    return [{"question": f"Q{i}", "type": "short_answer", "required": True} for i in range(n)]


def test_generate_posts_request_and_truncates() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"questions": _questions(4)})

    questions = asyncio.run(
        _client(handler).generate(description="Coffee habits", language="en", question_count=2)
    )

    assert [q.text for q in questions] == ["Q0", "Q1"]
    assert seen["url"] == f"{BASE}/generate-survey"
    assert seen["auth"] == "Bearer secret"
    assert seen["body"] == {
        "description": "Coffee habits",
        "hasDocument": False,
        "language": "en",
        "questionCount": 2,
    }


def test_generate_reports_function_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "AI gateway error", "questions": []})

    with pytest.raises(GenerationError, match="AI gateway error"):
        asyncio.run(_client(handler).generate(description="x", language="it"))


def test_generate_rejects_non_json_and_bad_payloads() -> None:
    def html(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>bad gateway</html>")

    def shapeless(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"questions": "nope"})

    with pytest.raises(GenerationError):
        asyncio.run(_client(html).generate(description="x", language="it"))
    with pytest.raises(GenerationError):
        asyncio.run(_client(shapeless).generate(description="x", language="it"))


def test_network_failure_is_a_generation_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(GenerationError):
        asyncio.run(_client(handler).generate(description="x", language="it"))


def test_refine_sends_current_question() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"questions": [{"question": "Which colour?", "type": "dropdown", "options": ["Red", "Blue"]}]},
        )

    question = make_question("multiple_choice", "Colour?", options=["Red", "Blue"], section_name="S")
    refined = asyncio.run(_client(handler).refine(question, feedback="use a dropdown", language="en"))

    assert refined.type == "dropdown"
    assert refined.text == "Which colour?"
    assert seen["body"] == {
        "refineQuestion": {
            "question": "Colour?",
            "feedback": "use a dropdown",
            "type": "multiple_choice",
            "options": ["Red", "Blue"],
        },
        "language": "en",
    }


def test_refine_with_empty_result_fails() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"questions": []})

    with pytest.raises(GenerationError):
        asyncio.run(_client(handler).refine(make_question("paragraph", "Q"), feedback="f", language="it"))


def test_clone_template() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"templateId": "tpl-1", "customTitle": "Mine"}
        return httpx.Response(200, json={"surveyId": "new-id", "creditsDebited": 3})

    result = asyncio.run(_client(handler).clone_template("tpl-1", custom_title="  Mine "))

    assert result.survey_id == "new-id"
    assert result.credits_debited == 3


def test_clone_template_error_carries_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(402, json={"error": "Insufficient credits", "required": 5})

    with pytest.raises(TemplateCloneError) as info:
        asyncio.run(_client(handler).clone_template("tpl-1"))

    assert str(info.value) == "Insufficient credits"
    assert info.value.status_code == 402
    assert info.value.details["required"] == 5
