"""Tests for wiring an editing session from settings."""

import asyncio

import httpx
import pytest

from survey_studio.config import Settings
from survey_studio.errors import PersistenceError
from survey_studio.studio import open_session
from survey_studio.surveys import actions as a


def _settings() -> Settings:
    return Settings(
        FUNCTIONS_URL="http://functions.test/functions/v1",
        AUTOSAVE_DELAY=0.01,
        HISTORY_LIMIT=5,
        DEFAULT_LANGUAGE="en",
    )


def test_new_session_generates_and_autosaves(store) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == "http://functions.test/functions/v1/generate-survey"
        return httpx.Response(200, json={"questions": [{"question": "How often?", "type": "paragraph"}]})

    session = open_session("u1", settings=_settings(), store=store, transport=httpx.MockTransport(handler))
    assert session.i18n.language == "en"
    assert session.editor.state.history.limit == 5

    async def scenario():
        await session.orchestrator.generate_section("Usage", "How people use the app")
        await session.close()

    asyncio.run(scenario())

    record = store.get(session.editor.state.draft_id)
    assert record.title == "Usage"
    assert record.language == "en"
    assert [n.title for n in session.notifier.drain()] == ["Section added!"]


def test_resume_existing_draft(store) -> None:
    record = store.create(
        user_id="u1",
        title="Old",
        sections=[{"name": "S", "questions": [{"question": "Q", "type": "short_answer"}]}],
        language="it",
    )

    session = open_session("u1", draft_id=record.id, settings=_settings(), store=store)

    assert session.editor.state.draft_id == record.id
    assert session.editor.state.section_names() == ["S"]
    assert session.i18n.language == "it"

    async def scenario():
        session.editor.dispatch(a.RenameSection(0, "Renamed"))
        await session.close()

    asyncio.run(scenario())
    assert store.get(record.id).sections[0]["name"] == "Renamed"


def test_resume_rejects_foreign_draft(store) -> None:
    record = store.create(user_id="u2", title="Theirs", sections=[], language="it")

    with pytest.raises(PersistenceError):
        open_session("u1", draft_id=record.id, settings=_settings(), store=store)
