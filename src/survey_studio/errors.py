"""Exception taxonomy for the editor core."""

from __future__ import annotations

from typing import Any, Dict, Optional


class SurveyStudioError(Exception):
    """Base class for all errors raised by this package."""


class DraftValidationError(SurveyStudioError):
    """Input rejected before it reaches the reducer (empty title, missing description...)."""

    def __init__(self, key: str, message: Optional[str] = None) -> None:
        super().__init__(message or key)
        self.key = key


class IndexOutOfRange(SurveyStudioError, IndexError):
    """A (section, question) pair no longer points at a live question."""

    def __init__(self, section_index: int, question_index: Optional[int] = None) -> None:
        where = f"section {section_index}"
        if question_index is not None:
            where += f", question {question_index}"
        super().__init__(f"stale index: {where}")
        self.section_index = section_index
        self.question_index = question_index


class GenerationError(SurveyStudioError):
    """The generate/refine function failed (network, non-2xx, malformed payload)."""


class PersistenceError(SurveyStudioError):
    """A draft could not be stored or published."""


class TemplateCloneError(SurveyStudioError):
    """Structured failure returned by the template clone function."""

    def __init__(self, message: str, *, status_code: int = 0, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details or {}
