from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from functools import partial
from typing import Any, Callable, Dict, Optional, TypeVar

import anyio
from sqlalchemy.exc import SQLAlchemyError

from ..errors import PersistenceError
from ..i18n import LanguageContext
from ..models import DRAFT, PUBLISHED, SurveyRecord
from ..notify import ERROR, SUCCESS, LoggingNotifier, Notification, Notifier
from . import actions as a
from .schema import sections_to_wire
from .state import DraftEditor, EditorState
from .store import SurveyStore, new_share_token
from .titles import UNTITLED_DRAFT, unique_title


logger = logging.getLogger(__name__)

DEFAULT_DELAY = 1.0

T = TypeVar("T")


class AutosaveSynchronizer:
    """Debounced persistence of one editor's draft, plus the publish step.

    Any change to ``sections`` or ``language`` cancels the pending timer and
    starts a new one. Only one save runs at a time; a change that lands while
    a save is in flight queues exactly one follow-up save.
    """

    def __init__(
        self,
        editor: DraftEditor,
        store: SurveyStore,
        *,
        user_id: str,
        delay: float = DEFAULT_DELAY,
        i18n: Optional[LanguageContext] = None,
        notifier: Optional[Notifier] = None,
        public_base_url: str = "",
    ) -> None:
        self.editor = editor
        self.store = store
        self.user_id = user_id
        self.delay = delay
        self.i18n = i18n or LanguageContext()
        self.notifier: Notifier = notifier or LoggingNotifier()
        self.public_base_url = public_base_url.rstrip("/")

        self.published = False
        self.share_token: Optional[str] = None
        self._timer: Optional[asyncio.Task[None]] = None
        self._inflight: Optional[asyncio.Task[None]] = None
        self._follow_up = False
        self._dirty = False
        self._publishing = False

        draft_id = editor.state.draft_id
        if draft_id:
            record = store.get(draft_id)
            if record is not None:
                self.published = record.status == PUBLISHED
                self.share_token = record.share_token
        self._unsubscribe = editor.subscribe(self._on_change)

    # -------------------- scheduling --------------------
    def _on_change(self, old: EditorState, new: EditorState) -> None:
        if old.sections == new.sections and old.language == new.language:
            return
        self.schedule()

    def schedule(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._publishing:
            # Saved once publish() has settled the record id.
            self._dirty = True
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Edited outside the event loop; picked up by the next flush().
            self._dirty = True
            return
        self._timer = loop.create_task(self._debounce())

    @property
    def share_link(self) -> Optional[str]:
        """Public form address once the draft is published."""
        if not self.published or not self.share_token:
            return None
        return f"{self.public_base_url}/s/{self.share_token}"

    @property
    def pending(self) -> bool:
        return self._timer is not None or self._dirty or self.is_saving

    @property
    def is_saving(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def _debounce(self) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        self._start_saving()

    def _start_saving(self) -> None:
        if self._publishing:
            self._dirty = True
            return
        if self.is_saving:
            self._follow_up = True
            return
        self._inflight = asyncio.create_task(self._save_loop())

    async def _save_loop(self) -> None:
        while True:
            self._follow_up = False
            self._dirty = False
            await self.save_now()
            if not self._follow_up:
                break

    async def flush(self) -> None:
        """Run any pending save right away and wait for in-flight work."""
        needs_save = self._dirty
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            needs_save = True
        if needs_save:
            self._start_saving()
        while self._inflight is not None and not self._inflight.done():
            await self._inflight

    def close(self) -> None:
        self._unsubscribe()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    # -------------------- persistence --------------------
    async def _call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        # Store calls block on the database; keep them off the event loop.
        return await anyio.to_thread.run_sync(partial(fn, *args, **kwargs))

    async def save_now(self) -> Optional[str]:
        """Persist the current draft once. Best effort: failures are only logged."""
        state = self.editor.state
        if state.is_empty:
            return None
        self.editor.dispatch(a.SetSaving(True))
        try:
            sections = sections_to_wire(state.sections)
            if state.draft_id:
                await self._call(self.store.update, state.draft_id, sections=sections, language=state.language)
                return state.draft_id
            existing = await self._call(self.store.titles_for_user, self.user_id)
            title = unique_title(state.sections[0].name or UNTITLED_DRAFT, existing)
            record = await self._call(
                self.store.create,
                user_id=self.user_id,
                title=title,
                sections=sections,
                language=state.language,
                status=DRAFT,
                is_active=False,
                share_token=new_share_token(),
            )
            self.share_token = record.share_token
            self.editor.dispatch(a.SetDraftId(record.id))
            logger.info("Created draft %s (%s)", record.id, title)
            return record.id
        except (PersistenceError, SQLAlchemyError):
            logger.exception("Error autosaving draft")
            return None
        finally:
            self.editor.dispatch(a.SetSaving(False))

    async def publish(
        self,
        title: str,
        *,
        description: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        expired_message: Optional[str] = None,
    ) -> Optional[SurveyRecord]:
        """Turn the draft into a published, shareable form.

        Returns ``None`` (after notifying) when the title is missing or the
        store fails, so the caller can keep its dialog open for a retry.
        """
        t = self.i18n.translate
        title = title.strip()
        if not title:
            self.notifier.notify(Notification(ERROR, t("titleRequired"), t("titleRequiredDesc")))
            return None

        # Autosave stays off until the record exists, or it could create a second one.
        self._publishing = True
        try:
            record = await self._publish(title, description, expires_at, expired_message)
        finally:
            self._publishing = False
        if self._dirty:
            # Edited while publishing; save the newer content to the same record.
            self._dirty = False
            self.schedule()
        if record is None:
            self.notifier.notify(Notification(ERROR, t("publishFailed"), t("publishFailedDesc")))
            return None

        logger.info("Published survey %s as %r", record.id, record.title)
        self.notifier.notify(
            Notification(SUCCESS, t("surveySaved"), t("surveySavedDesc", title=record.title, link=self.share_link))
        )
        return record

    async def _publish(
        self,
        title: str,
        description: Optional[str],
        expires_at: Optional[datetime],
        expired_message: Optional[str],
    ) -> Optional[SurveyRecord]:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        while self._inflight is not None and not self._inflight.done():
            await self._inflight

        state = self.editor.state
        self._dirty = False
        fields: Dict[str, Any] = {
            "description": (description or "").strip() or None,
            "sections": sections_to_wire(state.sections),
            "language": state.language,
            "expires_at": expires_at,
            "expired_message": (expired_message or "").strip() or None,
        }
        try:
            existing = await self._call(self.store.titles_for_user, self.user_id, exclude_id=state.draft_id)
            fields["title"] = unique_title(title, existing)
            record = await self._call(self.store.get, state.draft_id) if state.draft_id else None
            if record is not None:
                share_token = record.share_token or new_share_token()
                record = await self._call(self.store.publish, record.id, share_token=share_token, **fields)
            else:
                record = await self._call(
                    self.store.create,
                    user_id=self.user_id,
                    status=PUBLISHED,
                    is_active=True,
                    share_token=new_share_token(),
                    **fields,
                )
                self.editor.dispatch(a.SetDraftId(record.id))
        except (PersistenceError, SQLAlchemyError):
            logger.exception("Error publishing survey")
            return None

        self.published = True
        self.share_token = record.share_token
        return record
