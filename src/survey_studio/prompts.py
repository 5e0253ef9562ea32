"""Prompt construction for the ``generate-survey`` function."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


LANGUAGE_NAMES: Dict[str, str] = {
    "it": "Italian",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "pt": "Portuguese",
}

SYSTEM_PROMPT = """You are an expert survey designer. Generate professional survey questions based on the user's requirements.

Return a JSON object with a "questions" array. Each question should have:
- question: The question text
- type: One of: "multiple_choice", "checkbox", "short_answer", "paragraph", "dropdown"
- options: Array of options (only for multiple_choice, checkbox, or dropdown)
- required: Boolean indicating if the question is required"""


class RefineQuestion(BaseModel):
    question: str
    feedback: str
    type: str = "short_answer"
    options: Optional[List[str]] = None


class GenerateRequest(BaseModel):
    description: Optional[str] = None
    hasDocument: bool = False
    language: str = "it"
    questionCount: Optional[int] = Field(default=None, ge=1, le=50)
    refineQuestion: Optional[RefineQuestion] = None


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code.split("-")[0].lower(), code)


def _count_instruction(count: Optional[int]) -> str:
    if count:
        return f"Generate exactly {count} questions."
    return "Generate 5-10 relevant questions based on the input."


def build_messages(req: GenerateRequest) -> List[Dict[str, Any]]:
    """Return chat messages for a generation or a refinement request."""
    lang = language_name(req.language)
    if req.refineQuestion is not None:
        rq = req.refineQuestion
        current = {"question": rq.question, "type": rq.type}
        if rq.options:
            current["options"] = rq.options
        system = (
            f"{SYSTEM_PROMPT}\n\nYou are refining a single existing question. "
            f"Return exactly one question in the \"questions\" array, written in {lang}. "
            "Keep the same type unless the feedback asks to change it."
        )
        user = (
            f"Current question:\n{json.dumps(current, ensure_ascii=False)}\n\n"
            f"Feedback to apply:\n{rq.feedback}"
        )
        return [{"role": "system", "content": system}, {"role": "user", "content": user}]

    description = (req.description or "").strip()
    system = f"{SYSTEM_PROMPT}\n\n{_count_instruction(req.questionCount)} Write every question and option in {lang}."
    if req.hasDocument:
        user = (
            f"Convert this document content into survey questions: {description}\n\n"
            "Extract key topics and create survey questions that would gather feedback or "
            "information about the document's subject matter."
        )
    else:
        user = f"Create a Google Forms survey based on this request: {description}"
    return [{"role": "system", "content": system}, {"role": "user", "content": user}]
