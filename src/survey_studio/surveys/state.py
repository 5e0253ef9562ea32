from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type

from ..errors import IndexOutOfRange
from . import actions as a
from .actions import QuestionRef
from .history import DEFAULT_LIMIT, HistoryRing
from .schema import (
    ALL_KINDS,
    CHOICE_KINDS,
    DEFAULT_OPTIONS,
    Question,
    Section,
    change_kind,
    make_question,
    resolve_question,
    resolve_section,
    sections_from_wire,
)


logger = logging.getLogger(__name__)


IDLE = "idle"
FEEDBACK_OPEN = "feedback_open"
SELECTING = "selecting"


@dataclass(frozen=True)
class EditBuffer:
    """Staged copy of a question while the edit form is open."""

    text: str
    kind: str
    options: Tuple[str, ...] = ()
    required: bool = True
    section_name: str = ""
    feedback: Optional[str] = None

    @classmethod
    def of(cls, question: Question) -> "EditBuffer":
        return cls(
            text=question.text,
            kind=question.type,
            options=tuple(getattr(question, "options", None) or ()),
            required=question.required,
            section_name=question.section_name,
            feedback=question.feedback,
        )

    @property
    def has_options(self) -> bool:
        return self.kind in CHOICE_KINDS

    def to_question(self) -> Question:
        return make_question(
            self.kind,
            self.text,
            options=self.options,
            required=self.required,
            section_name=self.section_name,
            feedback=self.feedback,
        )


@dataclass(frozen=True)
class AddSectionForm:
    open: bool = False
    title: str = ""
    description: str = ""
    language: str = "it"
    question_count: Optional[int] = None
    is_generating: bool = False


@dataclass(frozen=True)
class MoreQuestionsForm:
    open: bool = False
    section_index: Optional[int] = None
    description: str = ""
    question_count: Optional[int] = None
    is_generating: bool = False


@dataclass(frozen=True)
class EditorState:
    sections: Tuple[Section, ...] = ()
    language: str = "it"
    draft_id: Optional[str] = None
    history: HistoryRing = field(default_factory=HistoryRing)

    # Main generation form
    description: str = ""
    section_name: str = ""
    question_count: Optional[int] = None
    document_name: Optional[str] = None
    document_text: str = ""

    # Busy flags
    is_generating: bool = False
    generating_more: Optional[int] = None
    applying_feedback: bool = False
    is_saving: bool = False

    # Editing
    editing_question: Optional[QuestionRef] = None
    edited_question: Optional[EditBuffer] = None
    editing_section_index: Optional[int] = None
    edited_section_name: str = ""

    # Feedback workflow
    showing_feedback: Optional[QuestionRef] = None
    selecting: bool = False
    source_feedback: str = ""
    selection: Tuple[QuestionRef, ...] = ()

    # Dialogs
    add_section: AddSectionForm = field(default_factory=AddSectionForm)
    more_questions: MoreQuestionsForm = field(default_factory=MoreQuestionsForm)

    @classmethod
    def initial(
        cls,
        sections: Sequence[Section] = (),
        *,
        language: str = "it",
        draft_id: Optional[str] = None,
        history_limit: int = DEFAULT_LIMIT,
    ) -> "EditorState":
        sections = tuple(sections)
        return cls(
            sections=sections,
            language=language,
            draft_id=draft_id,
            history=HistoryRing.start(sections, limit=history_limit),
            add_section=AddSectionForm(language=language),
        )

    @property
    def is_empty(self) -> bool:
        return not self.sections

    @property
    def feedback_mode(self) -> str:
        if self.showing_feedback is None:
            return IDLE
        return SELECTING if self.selecting else FEEDBACK_OPEN

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def section_names(self) -> List[str]:
        return [s.name for s in self.sections]


Handler = Callable[[EditorState, Any], EditorState]

_HANDLERS: Dict[Type[Any], Handler] = {}


def on(action_type: Type[Any]) -> Callable[[Handler], Handler]:
    def decorator(fn: Handler) -> Handler:
        _HANDLERS[action_type] = fn
        return fn

    return decorator


def apply(state: EditorState, action: Any) -> EditorState:
    """Pure transition: return the state after ``action``.

    Total by construction: unknown actions and stale indices return ``state``
    unchanged. A changed ``sections`` value is pushed onto the history ring,
    except when the change comes from undo/redo.
    """
    handler = _HANDLERS.get(type(action))
    if handler is None:
        logger.debug("No handler for %s", type(action).__name__)
        return state
    try:
        new_state = handler(state, action)
    except IndexOutOfRange as exc:
        logger.debug("Ignoring %s: %s", type(action).__name__, exc)
        return state
    if isinstance(action, (a.Undo, a.Redo)):
        return new_state
    if new_state.sections != state.sections:
        new_state = replace(new_state, history=new_state.history.push(new_state.sections))
    return new_state


# -------------------- helpers --------------------
def _stamp(questions: Sequence[Question], section_name: str) -> List[Question]:
    return [q if q.section_name == section_name else q.with_changes(section_name=section_name) for q in questions]


def _replace_section(sections: Tuple[Section, ...], index: int, section: Section) -> Tuple[Section, ...]:
    return sections[:index] + (section,) + sections[index + 1 :]


def _replace_question(state: EditorState, si: int, qi: int, question: Question) -> Tuple[Section, ...]:
    section = resolve_section(state.sections, si)
    questions = list(section.questions)
    questions[qi] = question
    return _replace_section(state.sections, si, section.model_copy(update={"questions": questions}))


def _close_feedback(state: EditorState) -> EditorState:
    return replace(state, showing_feedback=None, selecting=False, source_feedback="", selection=())


def _drop_index_state(state: EditorState) -> EditorState:
    """Close everything that addresses sections or questions by position."""
    return replace(
        _close_feedback(state),
        editing_question=None,
        edited_question=None,
        editing_section_index=None,
        edited_section_name="",
        more_questions=MoreQuestionsForm(),
    )


def _touches(ref: Optional[QuestionRef], section_index: int) -> bool:
    return ref is not None and ref[0] == section_index


# -------------------- sections --------------------
@on(a.AddSection)
def _add_section(state: EditorState, action: a.AddSection) -> EditorState:
    if action.name in state.section_names():
        return state
    section = Section(name=action.name, questions=_stamp(action.questions, action.name))
    return replace(state, sections=state.sections + (section,))


@on(a.RemoveSection)
def _remove_section(state: EditorState, action: a.RemoveSection) -> EditorState:
    kept = tuple(s for s in state.sections if s.name != action.name)
    if len(kept) == len(state.sections):
        return state
    # Indices after the removed section shift.
    return replace(_drop_index_state(state), sections=kept)


@on(a.ClearSections)
def _clear_sections(state: EditorState, action: a.ClearSections) -> EditorState:
    return replace(_drop_index_state(state), sections=())


@on(a.SetSections)
def _set_sections(state: EditorState, action: a.SetSections) -> EditorState:
    sections = tuple(Section(name=s.name, questions=_stamp(s.questions, s.name)) for s in action.sections)
    return replace(_drop_index_state(state), sections=sections)


@on(a.RenameSection)
def _rename_section(state: EditorState, action: a.RenameSection) -> EditorState:
    section = resolve_section(state.sections, action.index)
    name = action.new_name.strip()
    if not name:
        return state
    others = [s.name for i, s in enumerate(state.sections) if i != action.index]
    if name in others:
        return state
    renamed = Section(name=name, questions=_stamp(section.questions, name))
    return replace(
        state,
        sections=_replace_section(state.sections, action.index, renamed),
        editing_section_index=None,
        edited_section_name="",
    )


@on(a.StartEditSectionName)
def _start_edit_section_name(state: EditorState, action: a.StartEditSectionName) -> EditorState:
    section = resolve_section(state.sections, action.index)
    return replace(state, editing_section_index=action.index, edited_section_name=section.name)


@on(a.SetEditedSectionName)
def _set_edited_section_name(state: EditorState, action: a.SetEditedSectionName) -> EditorState:
    return replace(state, edited_section_name=action.name)


@on(a.SaveSectionName)
def _save_section_name(state: EditorState, action: a.SaveSectionName) -> EditorState:
    if state.editing_section_index is None:
        return state
    return _rename_section(state, a.RenameSection(state.editing_section_index, state.edited_section_name))


@on(a.CancelEditSectionName)
def _cancel_edit_section_name(state: EditorState, action: a.CancelEditSectionName) -> EditorState:
    return replace(state, editing_section_index=None, edited_section_name="")


# -------------------- questions --------------------
@on(a.AddQuestionsToSection)
def _add_questions(state: EditorState, action: a.AddQuestionsToSection) -> EditorState:
    section = resolve_section(state.sections, action.section_index)
    if not action.questions:
        return state
    questions = list(section.questions) + _stamp(action.questions, section.name)
    updated = section.model_copy(update={"questions": questions})
    return replace(state, sections=_replace_section(state.sections, action.section_index, updated))


@on(a.DeleteQuestion)
def _delete_question(state: EditorState, action: a.DeleteQuestion) -> EditorState:
    si, qi = action.section_index, action.question_index
    resolve_question(state.sections, si, qi)
    section = state.sections[si]
    questions = [q for i, q in enumerate(section.questions) if i != qi]
    if not questions:
        # Pruned: every following section moves up one place.
        sections = state.sections[:si] + state.sections[si + 1 :]
        return replace(_drop_index_state(state), sections=sections)
    sections = _replace_section(state.sections, si, section.model_copy(update={"questions": questions}))
    # Question indices in this section shift.
    if _touches(state.showing_feedback, si) or any(ref[0] == si for ref in state.selection):
        state = _close_feedback(state)
    if _touches(state.editing_question, si):
        state = replace(state, editing_question=None, edited_question=None)
    return replace(state, sections=sections)


@on(a.UpdateQuestionType)
def _update_question_type(state: EditorState, action: a.UpdateQuestionType) -> EditorState:
    question = resolve_question(state.sections, action.section_index, action.question_index)
    if action.kind not in ALL_KINDS:
        return state
    updated = change_kind(question, action.kind, action.options)
    return replace(state, sections=_replace_question(state, action.section_index, action.question_index, updated))


@on(a.StartEditQuestion)
def _start_edit_question(state: EditorState, action: a.StartEditQuestion) -> EditorState:
    question = resolve_question(state.sections, action.section_index, action.question_index)
    return replace(
        state,
        editing_question=(action.section_index, action.question_index),
        edited_question=EditBuffer.of(question),
    )


@on(a.UpdateEditedQuestion)
def _update_edited_question(state: EditorState, action: a.UpdateEditedQuestion) -> EditorState:
    buffer = state.edited_question
    if buffer is None:
        return state
    changes: Dict[str, Any] = {}
    if action.text is not None:
        changes["text"] = action.text
    if action.required is not None:
        changes["required"] = action.required
    if action.kind is not None and action.kind in ALL_KINDS and action.kind != buffer.kind:
        changes["kind"] = action.kind
        if action.kind in CHOICE_KINDS:
            changes["options"] = buffer.options or DEFAULT_OPTIONS
        else:
            changes["options"] = ()
    return replace(state, edited_question=replace(buffer, **changes))


@on(a.UpdateEditedOption)
def _update_edited_option(state: EditorState, action: a.UpdateEditedOption) -> EditorState:
    buffer = state.edited_question
    if buffer is None or not buffer.has_options or not 0 <= action.index < len(buffer.options):
        return state
    options = list(buffer.options)
    options[action.index] = action.value
    return replace(state, edited_question=replace(buffer, options=tuple(options)))


@on(a.AddEditedOption)
def _add_edited_option(state: EditorState, action: a.AddEditedOption) -> EditorState:
    buffer = state.edited_question
    if buffer is None or not buffer.has_options:
        return state
    return replace(state, edited_question=replace(buffer, options=buffer.options + ("",)))


@on(a.RemoveEditedOption)
def _remove_edited_option(state: EditorState, action: a.RemoveEditedOption) -> EditorState:
    buffer = state.edited_question
    if buffer is None or not buffer.has_options or len(buffer.options) <= 1:
        return state
    if not 0 <= action.index < len(buffer.options):
        return state
    options = buffer.options[: action.index] + buffer.options[action.index + 1 :]
    return replace(state, edited_question=replace(buffer, options=options))


@on(a.SaveEditedQuestion)
def _save_edited_question(state: EditorState, action: a.SaveEditedQuestion) -> EditorState:
    if state.editing_question is None or state.edited_question is None:
        return state
    si, qi = state.editing_question
    resolve_question(state.sections, si, qi)
    section_name = state.sections[si].name
    question = replace(state.edited_question, section_name=section_name).to_question()
    return replace(
        state,
        sections=_replace_question(state, si, qi, question),
        editing_question=None,
        edited_question=None,
    )


@on(a.CancelEditQuestion)
def _cancel_edit_question(state: EditorState, action: a.CancelEditQuestion) -> EditorState:
    return replace(state, editing_question=None, edited_question=None)


@on(a.ApplyRefinedQuestion)
def _apply_refined_question(state: EditorState, action: a.ApplyRefinedQuestion) -> EditorState:
    current = resolve_question(state.sections, action.section_index, action.question_index)
    refined = action.question.with_changes(
        section_name=state.sections[action.section_index].name,
        feedback=current.feedback,
        selected=None,
    )
    return replace(state, sections=_replace_question(state, action.section_index, action.question_index, refined))


# -------------------- feedback --------------------
@on(a.ToggleFeedback)
def _toggle_feedback(state: EditorState, action: a.ToggleFeedback) -> EditorState:
    ref = (action.section_index, action.question_index)
    if state.showing_feedback == ref:
        return _close_feedback(state)
    resolve_question(state.sections, *ref)
    return replace(_close_feedback(state), showing_feedback=ref)


@on(a.SaveFeedback)
def _save_feedback(state: EditorState, action: a.SaveFeedback) -> EditorState:
    question = resolve_question(state.sections, action.section_index, action.question_index)
    text = action.feedback.strip() or None
    if question.feedback == text:
        return state
    updated = question.with_changes(feedback=text)
    return replace(state, sections=_replace_question(state, action.section_index, action.question_index, updated))


@on(a.StartBatchSelection)
def _start_batch_selection(state: EditorState, action: a.StartBatchSelection) -> EditorState:
    if state.showing_feedback is None:
        return state
    question = resolve_question(state.sections, *state.showing_feedback)
    return replace(state, selecting=True, source_feedback=question.feedback or "", selection=())


@on(a.ToggleQuestionSelection)
def _toggle_question_selection(state: EditorState, action: a.ToggleQuestionSelection) -> EditorState:
    if not state.selecting:
        return state
    ref = (action.section_index, action.question_index)
    if ref == state.showing_feedback:
        return state
    resolve_question(state.sections, *ref)
    if ref in state.selection:
        selection = tuple(r for r in state.selection if r != ref)
    else:
        selection = state.selection + (ref,)
    return replace(state, selection=selection)


@on(a.CancelBatchSelection)
def _cancel_batch_selection(state: EditorState, action: a.CancelBatchSelection) -> EditorState:
    return _close_feedback(state)


@on(a.ClearSelection)
def _clear_selection(state: EditorState, action: a.ClearSelection) -> EditorState:
    return replace(state, selection=())


# -------------------- main generation form --------------------
@on(a.SetDescription)
def _set_description(state: EditorState, action: a.SetDescription) -> EditorState:
    return replace(state, description=action.text)


@on(a.SetSectionName)
def _set_section_name(state: EditorState, action: a.SetSectionName) -> EditorState:
    return replace(state, section_name=action.name)


@on(a.SetLanguage)
def _set_language(state: EditorState, action: a.SetLanguage) -> EditorState:
    return replace(state, language=action.language)


@on(a.SetQuestionCount)
def _set_question_count(state: EditorState, action: a.SetQuestionCount) -> EditorState:
    count = action.count if action.count is None or action.count > 0 else None
    return replace(state, question_count=count)


@on(a.SetUploadedDocument)
def _set_uploaded_document(state: EditorState, action: a.SetUploadedDocument) -> EditorState:
    if action.name is None:
        return replace(state, document_name=None, document_text="")
    return replace(state, document_name=action.name, document_text=action.text)


@on(a.ResetGenerationForm)
def _reset_generation_form(state: EditorState, action: a.ResetGenerationForm) -> EditorState:
    return replace(
        state,
        description="",
        section_name="",
        question_count=None,
        document_name=None,
        document_text="",
    )


# -------------------- add-section dialog --------------------
@on(a.OpenAddSectionDialog)
def _open_add_section(state: EditorState, action: a.OpenAddSectionDialog) -> EditorState:
    return replace(state, add_section=replace(state.add_section, open=True))


@on(a.UpdateAddSectionForm)
def _update_add_section(state: EditorState, action: a.UpdateAddSectionForm) -> EditorState:
    form = state.add_section
    changes: Dict[str, Any] = {}
    if action.title is not None:
        changes["title"] = action.title
    if action.description is not None:
        changes["description"] = action.description
    if action.language is not None:
        changes["language"] = action.language
    if action.clear_question_count:
        changes["question_count"] = None
    elif action.question_count is not None:
        changes["question_count"] = action.question_count if action.question_count > 0 else None
    return replace(state, add_section=replace(form, **changes))


@on(a.SetAddSectionGenerating)
def _set_add_section_generating(state: EditorState, action: a.SetAddSectionGenerating) -> EditorState:
    return replace(state, add_section=replace(state.add_section, is_generating=action.value))


@on(a.ResetAddSectionForm)
def _reset_add_section(state: EditorState, action: a.ResetAddSectionForm) -> EditorState:
    return replace(state, add_section=AddSectionForm(language=state.language))


# -------------------- more-questions dialog --------------------
@on(a.OpenMoreQuestionsDialog)
def _open_more_questions(state: EditorState, action: a.OpenMoreQuestionsDialog) -> EditorState:
    resolve_section(state.sections, action.section_index)
    return replace(
        state,
        more_questions=replace(state.more_questions, open=True, section_index=action.section_index),
    )


@on(a.UpdateMoreQuestionsForm)
def _update_more_questions(state: EditorState, action: a.UpdateMoreQuestionsForm) -> EditorState:
    form = state.more_questions
    changes: Dict[str, Any] = {}
    if action.description is not None:
        changes["description"] = action.description
    if action.clear_question_count:
        changes["question_count"] = None
    elif action.question_count is not None:
        changes["question_count"] = action.question_count if action.question_count > 0 else None
    return replace(state, more_questions=replace(form, **changes))


@on(a.SetMoreQuestionsGenerating)
def _set_more_questions_generating(state: EditorState, action: a.SetMoreQuestionsGenerating) -> EditorState:
    return replace(state, more_questions=replace(state.more_questions, is_generating=action.value))


@on(a.ResetMoreQuestionsForm)
def _reset_more_questions(state: EditorState, action: a.ResetMoreQuestionsForm) -> EditorState:
    return replace(state, more_questions=MoreQuestionsForm())


# -------------------- busy flags / persistence --------------------
@on(a.SetGenerating)
def _set_generating(state: EditorState, action: a.SetGenerating) -> EditorState:
    return replace(state, is_generating=action.value)


@on(a.SetGeneratingMore)
def _set_generating_more(state: EditorState, action: a.SetGeneratingMore) -> EditorState:
    return replace(state, generating_more=action.section_index)


@on(a.SetApplyingFeedback)
def _set_applying_feedback(state: EditorState, action: a.SetApplyingFeedback) -> EditorState:
    return replace(state, applying_feedback=action.value)


@on(a.SetDraftId)
def _set_draft_id(state: EditorState, action: a.SetDraftId) -> EditorState:
    return replace(state, draft_id=action.draft_id)


@on(a.SetSaving)
def _set_saving(state: EditorState, action: a.SetSaving) -> EditorState:
    return replace(state, is_saving=action.value)


# -------------------- history --------------------
@on(a.Undo)
def _undo(state: EditorState, action: a.Undo) -> EditorState:
    history = state.history.undo()
    if history is None:
        return state
    return replace(_drop_index_state(state), sections=history.current, history=history)


@on(a.Redo)
def _redo(state: EditorState, action: a.Redo) -> EditorState:
    history = state.history.redo()
    if history is None:
        return state
    return replace(_drop_index_state(state), sections=history.current, history=history)


Listener = Callable[[EditorState, EditorState], None]


class DraftEditor:
    """Owns one editing session's state; every change goes through ``dispatch``."""

    def __init__(self, state: Optional[EditorState] = None) -> None:
        self._state = state or EditorState.initial()
        self._listeners: List[Listener] = []

    @classmethod
    def from_record(cls, record: Any, *, history_limit: int = DEFAULT_LIMIT) -> "DraftEditor":
        """Seed an editor from a stored survey (``models.SurveyRecord``)."""
        sections = sections_from_wire(record.sections)
        return cls(
            EditorState.initial(
                sections,
                language=record.language,
                draft_id=record.id,
                history_limit=history_limit,
            )
        )

    @property
    def state(self) -> EditorState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def dispatch(self, action: Any) -> EditorState:
        old = self._state
        new = apply(old, action)
        if new is old:
            return old
        self._state = new
        for listener in list(self._listeners):
            listener(old, new)
        return new

    def undo(self) -> EditorState:
        return self.dispatch(a.Undo())

    def redo(self) -> EditorState:
        return self.dispatch(a.Redo())
