"""Application root for one editing session.

Builds the language context once and hands it, with the notifier, to the
orchestrator and the synchronizer that share a single ``DraftEditor``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .config import Settings
from .errors import PersistenceError
from .functions_client import FunctionsClient
from .i18n import LanguageContext
from .notify import CollectingNotifier, Notifier
from .surveys.orchestrator import GenerationOrchestrator
from .surveys.state import DraftEditor, EditorState
from .surveys.store import SurveyStore
from .surveys.sync import AutosaveSynchronizer


logger = logging.getLogger(__name__)


@dataclass
class EditorSession:
    editor: DraftEditor
    orchestrator: GenerationOrchestrator
    sync: AutosaveSynchronizer
    i18n: LanguageContext
    notifier: Notifier

    async def close(self) -> None:
        await self.sync.flush()
        self.sync.close()


def open_session(
    user_id: str,
    *,
    draft_id: Optional[str] = None,
    settings: Optional[Settings] = None,
    store: Optional[SurveyStore] = None,
    notifier: Optional[Notifier] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> EditorSession:
    """Open a fresh draft, or resume ``draft_id`` when given."""
    settings = settings or Settings()
    store = store or SurveyStore()
    notifier = notifier or CollectingNotifier()

    if draft_id:
        record = store.get(draft_id)
        if record is None or record.user_id != user_id:
            raise PersistenceError(f"draft {draft_id} not found")
        editor = DraftEditor.from_record(record, history_limit=settings.history_limit)
        logger.info("Resumed draft %s for %s", draft_id, user_id)
    else:
        editor = DraftEditor(
            EditorState.initial(language=settings.default_language, history_limit=settings.history_limit)
        )

    i18n = LanguageContext(editor.state.language)
    client = FunctionsClient(
        settings.functions_url,
        token=settings.functions_token,
        timeout=settings.request_timeout,
        transport=transport,
    )
    return EditorSession(
        editor=editor,
        orchestrator=GenerationOrchestrator(editor, client, i18n=i18n, notifier=notifier),
        sync=AutosaveSynchronizer(
            editor,
            store,
            user_id=user_id,
            delay=settings.autosave_delay,
            i18n=i18n,
            notifier=notifier,
            public_base_url=settings.public_base_url,
        ),
        i18n=i18n,
        notifier=notifier,
    )
