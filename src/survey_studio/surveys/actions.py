"""Actions accepted by the draft reducer.

Every action is a small frozen value; async results (generation, refinement,
autosave) are translated into these before they reach ``state.apply``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .schema import Question, Section


# -------------------- Sections --------------------
@dataclass(frozen=True)
class AddSection:
    name: str
    questions: Sequence[Question] = ()


@dataclass(frozen=True)
class RemoveSection:
    name: str


@dataclass(frozen=True)
class ClearSections:
    pass


@dataclass(frozen=True)
class SetSections:
    """Replace all sections at once (CSV import, seeding)."""

    sections: Sequence[Section]


@dataclass(frozen=True)
class RenameSection:
    index: int
    new_name: str


@dataclass(frozen=True)
class StartEditSectionName:
    index: int


@dataclass(frozen=True)
class SetEditedSectionName:
    name: str


@dataclass(frozen=True)
class SaveSectionName:
    pass


@dataclass(frozen=True)
class CancelEditSectionName:
    pass


# -------------------- Questions --------------------
@dataclass(frozen=True)
class AddQuestionsToSection:
    section_index: int
    questions: Sequence[Question]


@dataclass(frozen=True)
class DeleteQuestion:
    section_index: int
    question_index: int


@dataclass(frozen=True)
class UpdateQuestionType:
    section_index: int
    question_index: int
    kind: str
    options: Optional[Sequence[str]] = None


@dataclass(frozen=True)
class StartEditQuestion:
    section_index: int
    question_index: int


@dataclass(frozen=True)
class UpdateEditedQuestion:
    text: Optional[str] = None
    required: Optional[bool] = None
    kind: Optional[str] = None


@dataclass(frozen=True)
class UpdateEditedOption:
    index: int
    value: str


@dataclass(frozen=True)
class AddEditedOption:
    pass


@dataclass(frozen=True)
class RemoveEditedOption:
    index: int


@dataclass(frozen=True)
class SaveEditedQuestion:
    pass


@dataclass(frozen=True)
class CancelEditQuestion:
    pass


@dataclass(frozen=True)
class ApplyRefinedQuestion:
    section_index: int
    question_index: int
    question: Question


# -------------------- Feedback --------------------
@dataclass(frozen=True)
class ToggleFeedback:
    section_index: int
    question_index: int


@dataclass(frozen=True)
class SaveFeedback:
    section_index: int
    question_index: int
    feedback: str


@dataclass(frozen=True)
class StartBatchSelection:
    pass


@dataclass(frozen=True)
class ToggleQuestionSelection:
    section_index: int
    question_index: int


@dataclass(frozen=True)
class CancelBatchSelection:
    pass


@dataclass(frozen=True)
class ClearSelection:
    pass


# -------------------- Main generation form --------------------
@dataclass(frozen=True)
class SetDescription:
    text: str


@dataclass(frozen=True)
class SetSectionName:
    name: str


@dataclass(frozen=True)
class SetLanguage:
    language: str


@dataclass(frozen=True)
class SetQuestionCount:
    count: Optional[int]


@dataclass(frozen=True)
class SetUploadedDocument:
    name: Optional[str]
    text: str = ""


@dataclass(frozen=True)
class ResetGenerationForm:
    pass


# -------------------- Add-section dialog --------------------
@dataclass(frozen=True)
class OpenAddSectionDialog:
    pass


@dataclass(frozen=True)
class UpdateAddSectionForm:
    title: Optional[str] = None
    description: Optional[str] = None
    language: Optional[str] = None
    question_count: Optional[int] = None
    clear_question_count: bool = False


@dataclass(frozen=True)
class SetAddSectionGenerating:
    value: bool


@dataclass(frozen=True)
class ResetAddSectionForm:
    pass


# -------------------- More-questions dialog --------------------
@dataclass(frozen=True)
class OpenMoreQuestionsDialog:
    section_index: int


@dataclass(frozen=True)
class UpdateMoreQuestionsForm:
    description: Optional[str] = None
    question_count: Optional[int] = None
    clear_question_count: bool = False


@dataclass(frozen=True)
class SetMoreQuestionsGenerating:
    value: bool


@dataclass(frozen=True)
class ResetMoreQuestionsForm:
    pass


# -------------------- Busy flags / persistence --------------------
@dataclass(frozen=True)
class SetGenerating:
    value: bool


@dataclass(frozen=True)
class SetGeneratingMore:
    section_index: Optional[int]


@dataclass(frozen=True)
class SetApplyingFeedback:
    value: bool


@dataclass(frozen=True)
class SetDraftId:
    draft_id: Optional[str]


@dataclass(frozen=True)
class SetSaving:
    value: bool


# -------------------- History --------------------
@dataclass(frozen=True)
class Undo:
    pass


@dataclass(frozen=True)
class Redo:
    pass


QuestionRef = Tuple[int, int]
