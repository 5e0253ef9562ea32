from __future__ import annotations

import logging
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Sequence, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..errors import IndexOutOfRange


logger = logging.getLogger(__name__)

QuestionKind = Literal["short_answer", "paragraph", "multiple_choice", "checkbox", "dropdown"]

TEXT_KINDS: tuple[str, ...] = ("short_answer", "paragraph")
CHOICE_KINDS: tuple[str, ...] = ("multiple_choice", "checkbox", "dropdown")
ALL_KINDS: tuple[str, ...] = TEXT_KINDS + CHOICE_KINDS

DEFAULT_OPTIONS: tuple[str, ...] = ("Option 1", "Option 2")


class _QuestionBase(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str = Field(validation_alias=AliasChoices("question", "text"), serialization_alias="question")
    required: bool = True
    section_name: str = Field(
        default="",
        validation_alias=AliasChoices("section", "section_name"),
        serialization_alias="section",
    )
    feedback: Optional[str] = None
    selected: Optional[bool] = None  # transient UI flag, never persisted

    @field_validator("section_name", mode="before")
    @classmethod
    def _none_section(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def has_options(self) -> bool:
        return self.type in CHOICE_KINDS  # type: ignore[attr-defined]

    def with_changes(self, **changes: Any) -> "Question":
        return self.model_copy(update=changes)  # type: ignore[return-value]


class ShortAnswerQuestion(_QuestionBase):
    type: Literal["short_answer"] = "short_answer"


class ParagraphQuestion(_QuestionBase):
    type: Literal["paragraph"] = "paragraph"


class _ChoiceQuestion(_QuestionBase):
    options: List[str] = Field(min_length=1)


class MultipleChoiceQuestion(_ChoiceQuestion):
    type: Literal["multiple_choice"] = "multiple_choice"


class CheckboxQuestion(_ChoiceQuestion):
    type: Literal["checkbox"] = "checkbox"


class DropdownQuestion(_ChoiceQuestion):
    type: Literal["dropdown"] = "dropdown"


Question = Annotated[
    Union[
        ShortAnswerQuestion,
        ParagraphQuestion,
        MultipleChoiceQuestion,
        CheckboxQuestion,
        DropdownQuestion,
    ],
    Field(discriminator="type"),
]

QUESTION_CLASSES: Dict[str, type] = {
    "short_answer": ShortAnswerQuestion,
    "paragraph": ParagraphQuestion,
    "multiple_choice": MultipleChoiceQuestion,
    "checkbox": CheckboxQuestion,
    "dropdown": DropdownQuestion,
}


class Section(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    questions: List[Question] = Field(default_factory=list)


def make_question(
    kind: str,
    text: str,
    *,
    options: Optional[Sequence[str]] = None,
    required: bool = True,
    section_name: str = "",
    feedback: Optional[str] = None,
) -> Question:
    """Build a question of ``kind`` keeping the kind/options invariant.

    Choice kinds without usable options get ``DEFAULT_OPTIONS``; text kinds
    silently drop any options they were given.
    """
    if kind not in QUESTION_CLASSES:
        logger.debug("Unknown question type %r, using short_answer", kind)
        kind = "short_answer"
    cls = QUESTION_CLASSES[kind]
    fields: Dict[str, Any] = {
        "text": text,
        "required": required,
        "section_name": section_name,
        "feedback": feedback,
    }
    if kind in CHOICE_KINDS:
        cleaned = [str(o) for o in (options or []) if str(o).strip()]
        fields["options"] = cleaned or list(DEFAULT_OPTIONS)
    return cls(**fields)


def change_kind(question: Question, kind: str, options: Optional[Sequence[str]] = None) -> Question:
    """Return ``question`` re-typed as ``kind``.

    Switching to a choice kind keeps explicit ``options``, else the question's
    current options, else the defaults. Switching to a text kind clears them.
    """
    current = list(getattr(question, "options", None) or [])
    return make_question(
        kind,
        question.text,
        options=options if options else current,
        required=question.required,
        section_name=question.section_name,
        feedback=question.feedback,
    )


def question_from_wire(data: Mapping[str, Any], *, section_name: Optional[str] = None) -> Question:
    """Parse one question as produced by the generator or stored in a record."""
    if not isinstance(data, Mapping):
        raise ValueError("question must be an object")
    text = data.get("question")
    if text is None:
        text = data.get("text")
    if not isinstance(text, str):
        raise ValueError("question text missing")
    options = data.get("options")
    if options is not None and not isinstance(options, list):
        raise ValueError("options must be a list")
    return make_question(
        str(data.get("type") or "short_answer"),
        text,
        options=options,
        required=bool(data.get("required", True)),
        section_name=section_name if section_name is not None else str(data.get("section") or ""),
        feedback=data.get("feedback") or None,
    )


def questions_from_wire(items: Any, *, section_name: Optional[str] = None) -> List[Question]:
    if not isinstance(items, list):
        raise ValueError("questions must be a list")
    return [question_from_wire(item, section_name=section_name) for item in items]


def question_to_wire(question: Question) -> Dict[str, Any]:
    data = question.model_dump(by_alias=True, exclude={"selected"}, exclude_none=True)
    return data


def sections_from_wire(items: Any) -> List[Section]:
    """Read ``Section[]`` JSON (tolerates legacy ``text`` keys and missing lists)."""
    if not isinstance(items, list):
        return []
    sections: List[Section] = []
    for raw in items:
        if not isinstance(raw, Mapping):
            continue
        name = str(raw.get("name") or "")
        questions = questions_from_wire(raw.get("questions") or [], section_name=name)
        sections.append(Section(name=name, questions=questions))
    return sections


def sections_to_wire(sections: Sequence[Section]) -> List[Dict[str, Any]]:
    return [
        {"name": s.name, "questions": [question_to_wire(q) for q in s.questions]}
        for s in sections
    ]


def resolve_question(sections: Sequence[Section], section_index: int, question_index: int) -> Question:
    """Return the question at the given pair or raise ``IndexOutOfRange``."""
    if not 0 <= section_index < len(sections):
        raise IndexOutOfRange(section_index, question_index)
    questions = sections[section_index].questions
    if not 0 <= question_index < len(questions):
        raise IndexOutOfRange(section_index, question_index)
    return questions[question_index]


def resolve_section(sections: Sequence[Section], section_index: int) -> Section:
    if not 0 <= section_index < len(sections):
        raise IndexOutOfRange(section_index)
    return sections[section_index]


def count_questions(sections: Sequence[Section]) -> int:
    return sum(len(s.questions) for s in sections)
