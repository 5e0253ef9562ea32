from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..errors import DraftValidationError, GenerationError, IndexOutOfRange, TemplateCloneError
from ..functions_client import CloneResult, FunctionsClient
from ..i18n import LanguageContext
from ..notify import ERROR, SUCCESS, LoggingNotifier, Notification, Notifier
from . import actions as a
from .csv_io import import_csv
from .schema import Question, Section, count_questions, resolve_question, resolve_section
from .state import DraftEditor, QuestionRef


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchResult:
    succeeded: int
    total: int
    failures: Tuple[Tuple[QuestionRef, str], ...] = ()

    @property
    def failed(self) -> int:
        return self.total - self.succeeded


def continue_prompt(section: Section) -> str:
    existing = ", ".join(q.text for q in section.questions)
    return (
        f'Generate additional questions similar to the existing ones in section "{section.name}". '
        f"Existing questions: {existing}"
    )


class GenerationOrchestrator:
    """Mediates between the draft editor and the generate/refine function.

    Each public coroutine is one user-initiated action: it produces exactly
    one notification, never raises into the caller for expected failures and
    only touches the draft through ``editor.dispatch``.
    """

    def __init__(
        self,
        editor: DraftEditor,
        client: FunctionsClient,
        *,
        i18n: Optional[LanguageContext] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self.editor = editor
        self.client = client
        self.i18n = i18n or LanguageContext()
        self.notifier: Notifier = notifier or LoggingNotifier()

    # -------------------- notifications --------------------
    def _notify(self, level: str, title_key: str, desc_key: str = "", **params: object) -> None:
        t = self.i18n.translate
        self.notifier.notify(Notification(level, t(title_key, **params), t(desc_key, **params) if desc_key else ""))

    def _invalid(self, exc: DraftValidationError, title_key: str) -> None:
        self._notify(ERROR, title_key, exc.key)

    # -------------------- lookup --------------------
    def _locate(self, question: Question, hint: QuestionRef) -> Optional[QuestionRef]:
        """Find ``question`` in the current draft, preferring its old position."""
        sections = self.editor.state.sections
        try:
            if resolve_question(sections, *hint) is question:
                return hint
        except IndexOutOfRange:
            pass
        for si, section in enumerate(sections):
            for qi, candidate in enumerate(section.questions):
                if candidate is question:
                    return (si, qi)
        return None

    def _section_index(self, name: str) -> Optional[int]:
        names = self.editor.state.section_names()
        return names.index(name) if name in names else None

    # -------------------- generation --------------------
    async def generate_section(
        self,
        name: str,
        description: str,
        *,
        language: Optional[str] = None,
        question_count: Optional[int] = None,
        has_document: bool = False,
    ) -> Optional[Section]:
        """Generate a whole new section; the draft is untouched on failure."""
        name = name.strip()
        try:
            if not name:
                raise DraftValidationError("provideSectionName")
            if not description.strip():
                raise DraftValidationError("provideDescription")
        except DraftValidationError as exc:
            self._invalid(exc, "sectionNameRequired" if exc.key == "provideSectionName" else "inputRequired")
            return None
        if self._section_index(name) is not None:
            self._notify(ERROR, "generationFailed", "sectionExists", section=name)
            return None

        try:
            questions = await self.client.generate(
                description=description,
                language=language or self.editor.state.language,
                question_count=question_count,
                has_document=has_document,
            )
            if not questions:
                raise GenerationError("no questions returned")
        except GenerationError as exc:
            logger.warning("Section generation failed for %r: %s", name, exc)
            self._notify(ERROR, "generationFailed", "failedToGenerate")
            return None

        if self._section_index(name) is not None:
            # Added while we were waiting for the generator.
            self._notify(ERROR, "generationFailed", "sectionExists", section=name)
            return None
        self.editor.dispatch(a.AddSection(name, questions))
        section = self.editor.state.sections[-1]
        self._notify(SUCCESS, "sectionAdded", "questionsAddedTo", count=len(section.questions), section=name)
        return section

    async def generate_from_form(self) -> Optional[Section]:
        """Main input panel: section name + description or uploaded document."""
        state = self.editor.state
        if state.document_name:
            description = state.document_text or f"Document: {state.document_name}"
            has_document = True
        else:
            description = state.description
            has_document = False
        self.editor.dispatch(a.SetGenerating(True))
        try:
            section = await self.generate_section(
                state.section_name,
                description,
                question_count=state.question_count,
                has_document=has_document,
            )
        finally:
            self.editor.dispatch(a.SetGenerating(False))
        if section is not None:
            self.editor.dispatch(a.ResetGenerationForm())
        return section

    async def generate_from_add_section_dialog(self) -> Optional[Section]:
        form = self.editor.state.add_section
        self.editor.dispatch(a.SetAddSectionGenerating(True))
        try:
            section = await self.generate_section(
                form.title,
                form.description,
                language=form.language,
                question_count=form.question_count,
            )
        finally:
            self.editor.dispatch(a.SetAddSectionGenerating(False))
        if section is not None:
            self.editor.dispatch(a.ResetAddSectionForm())
        return section

    async def generate_more(
        self,
        section_index: int,
        description: Optional[str] = None,
        question_count: Optional[int] = None,
    ) -> List[Question]:
        """Append generated questions to an existing section.

        Without ``description`` the prompt continues the section's topic.
        """
        try:
            section = resolve_section(self.editor.state.sections, section_index)
        except IndexOutOfRange:
            self._notify(ERROR, "generationFailed", "questionNotFound")
            return []
        if description is not None and not description.strip():
            self._notify(ERROR, "inputRequired", "provideDescription")
            return []
        prompt = description if description is not None else continue_prompt(section)

        self.editor.dispatch(a.SetGeneratingMore(section_index))
        try:
            questions = await self.client.generate(
                description=prompt,
                language=self.editor.state.language,
                question_count=question_count,
            )
            if not questions:
                raise GenerationError("no questions returned")
        except GenerationError as exc:
            logger.warning("More questions failed for section %r: %s", section.name, exc)
            self._notify(ERROR, "generationFailed", "failedToGenerate")
            return []
        finally:
            self.editor.dispatch(a.SetGeneratingMore(None))

        current = self._section_index(section.name)
        if current is None:
            self._notify(ERROR, "generationFailed", "questionNotFound")
            return []
        self.editor.dispatch(a.AddQuestionsToSection(current, questions))
        self._notify(SUCCESS, "questionsAdded", "newQuestionsAdded", count=len(questions))
        return questions

    async def generate_more_from_dialog(self) -> List[Question]:
        form = self.editor.state.more_questions
        if form.section_index is None:
            return []
        if not form.description.strip():
            self._notify(ERROR, "inputRequired", "provideDescription")
            return []
        self.editor.dispatch(a.SetMoreQuestionsGenerating(True))
        try:
            questions = await self.generate_more(form.section_index, form.description, form.question_count)
        finally:
            self.editor.dispatch(a.SetMoreQuestionsGenerating(False))
        if questions:
            self.editor.dispatch(a.ResetMoreQuestionsForm())
        return questions

    # -------------------- refinement --------------------
    async def refine_one(
        self,
        section_index: int,
        question_index: int,
        feedback: Optional[str] = None,
    ) -> Optional[Question]:
        """Rewrite one question from its feedback; the annotation is kept."""
        ref = (section_index, question_index)
        try:
            if feedback is not None and feedback.strip():
                self.editor.dispatch(a.SaveFeedback(section_index, question_index, feedback))
            question = resolve_question(self.editor.state.sections, *ref)
        except IndexOutOfRange:
            self._notify(ERROR, "generationFailed", "questionNotFound")
            return None
        if not question.feedback:
            self._notify(ERROR, "noFeedback", "noFeedbackDesc")
            return None

        self.editor.dispatch(a.SetApplyingFeedback(True))
        try:
            refined = await self.client.refine(
                question,
                feedback=question.feedback,
                language=self.editor.state.language,
            )
        except GenerationError as exc:
            logger.warning("Refinement failed for %s: %s", ref, exc)
            self._notify(ERROR, "generationFailed", "failedToGenerate")
            return None
        finally:
            self.editor.dispatch(a.SetApplyingFeedback(False))

        location = self._locate(question, ref)
        if location is None:
            self._notify(ERROR, "generationFailed", "questionNotFound")
            return None
        self.editor.dispatch(a.ApplyRefinedQuestion(location[0], location[1], refined))
        self._notify(SUCCESS, "feedbackApplied", "feedbackAppliedDesc")
        return resolve_question(self.editor.state.sections, *location)

    async def refine_batch(self, feedback: Optional[str] = None) -> Optional[BatchResult]:
        """Apply one feedback to every selected question, one request at a time.

        Requests go out in selection order; a failed item is logged and
        skipped. The selection is cleared and the feedback panel closed
        afterwards, whatever the outcome.
        """
        state = self.editor.state
        text = (feedback if feedback is not None else state.source_feedback).strip()
        if not text:
            self._notify(ERROR, "noFeedback", "noFeedbackDesc")
            return None
        selection = list(state.selection)
        if not selection:
            self._notify(ERROR, "noQuestionsSelected")
            return None

        targets: List[Tuple[QuestionRef, Optional[Question]]] = []
        for ref in selection:
            try:
                targets.append((ref, resolve_question(state.sections, *ref)))
            except IndexOutOfRange:
                targets.append((ref, None))

        succeeded = 0
        failures: List[Tuple[QuestionRef, str]] = []
        self.editor.dispatch(a.SetApplyingFeedback(True))
        try:
            for ref, question in targets:
                if question is None:
                    failures.append((ref, "stale index"))
                    continue
                try:
                    refined = await self.client.refine(question, feedback=text, language=self.editor.state.language)
                except GenerationError as exc:
                    logger.warning("Batch refinement failed for %s: %s", ref, exc)
                    failures.append((ref, str(exc)))
                    continue
                location = self._locate(question, ref)
                if location is None:
                    failures.append((ref, "question removed"))
                    continue
                self.editor.dispatch(a.ApplyRefinedQuestion(location[0], location[1], refined))
                succeeded += 1
        finally:
            self.editor.dispatch(a.SetApplyingFeedback(False))
            self.editor.dispatch(a.ClearSelection())
            self.editor.dispatch(a.CancelBatchSelection())

        result = BatchResult(succeeded=succeeded, total=len(targets), failures=tuple(failures))
        self._notify(
            SUCCESS if succeeded else ERROR,
            "feedbackApplied" if succeeded else "generationFailed",
            "batchResult",
            succeeded=succeeded,
            total=result.total,
        )
        return result

    # -------------------- import / templates --------------------
    def import_csv(self, text: str) -> List[Section]:
        """Append the sections of an exported CSV to the draft."""
        try:
            imported = import_csv(text)
        except DraftValidationError as exc:
            self._invalid(exc, "importFailed")
            return []
        existing = self.editor.state.sections
        taken = {s.name for s in existing}
        merged = list(existing)
        for section in imported:
            if section.name in taken:
                index = next(i for i, s in enumerate(merged) if s.name == section.name)
                merged[index] = merged[index].model_copy(
                    update={"questions": list(merged[index].questions) + list(section.questions)}
                )
            else:
                merged.append(section)
                taken.add(section.name)
        self.editor.dispatch(a.SetSections(merged))
        self._notify(
            SUCCESS,
            "csvImported",
            "csvImportedDesc",
            sections=len(imported),
            questions=count_questions(imported),
        )
        return imported

    async def clone_template(self, template_id: str, custom_title: Optional[str] = None) -> Optional[CloneResult]:
        try:
            result = await self.client.clone_template(template_id, custom_title=custom_title)
        except TemplateCloneError as exc:
            logger.warning("Template clone failed for %s: %s", template_id, exc)
            message = str(exc)
            if message == "Insufficient credits":
                key = "insufficientCredits"
            elif message == "Cannot clone your own template":
                key = "cannotCloneOwn"
            elif exc.status_code == 404:
                key = "templateNotFound"
            else:
                key = ""
            if key:
                self._notify(ERROR, "cloneFailed", key)
            else:
                self.notifier.notify(Notification(ERROR, self.i18n.translate("cloneFailed"), message))
            return None
        self._notify(SUCCESS, "templateCloned", "templateClonedDesc", credits=result.credits_debited)
        return result
