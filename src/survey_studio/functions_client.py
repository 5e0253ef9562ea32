from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from .errors import GenerationError, TemplateCloneError
from .surveys.schema import Question, question_to_wire, questions_from_wire


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CloneResult:
    survey_id: str
    credits_debited: int = 0


class FunctionsClient:
    """Calls the hosted ``generate-survey`` and ``clone-survey-template`` functions."""

    def __init__(
        self,
        base_url: str,
        *,
        token: str = "",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        url = f"{self.base_url}/{path}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            return await client.post(url, json=payload, headers=self._headers())

    async def _generate_call(self, payload: Dict[str, Any]) -> List[Question]:
        try:
            resp = await self._post("generate-survey", payload)
        except httpx.HTTPError as exc:
            raise GenerationError(f"generate-survey unreachable: {exc}") from exc
        try:
            data = resp.json()
        except ValueError as exc:
            raise GenerationError(f"generate-survey returned invalid JSON (HTTP {resp.status_code})") from exc
        if resp.is_error or not isinstance(data, dict) or data.get("error"):
            message = data.get("error") if isinstance(data, dict) else None
            raise GenerationError(message or f"generate-survey failed with HTTP {resp.status_code}")
        try:
            return questions_from_wire(data.get("questions"))
        except ValueError as exc:
            raise GenerationError(f"malformed questions payload: {exc}") from exc

    async def generate(
        self,
        *,
        description: str,
        language: str,
        question_count: Optional[int] = None,
        has_document: bool = False,
    ) -> List[Question]:
        """Draft new questions from a description (or extracted document text).

        Body: {"description": "...", "hasDocument": false, "language": "it", "questionCount": 5}
        """
        payload: Dict[str, Any] = {
            "description": description,
            "hasDocument": has_document,
            "language": language,
        }
        if question_count:
            payload["questionCount"] = question_count
        questions = await self._generate_call(payload)
        if question_count and len(questions) > question_count:
            questions = questions[:question_count]
        return questions

    async def refine(self, question: Question, *, feedback: str, language: str) -> Question:
        """Rewrite one question following free-text feedback."""
        wire = question_to_wire(question)
        refine: Dict[str, Any] = {
            "question": wire["question"],
            "feedback": feedback,
            "type": wire["type"],
        }
        if "options" in wire:
            refine["options"] = wire["options"]
        questions = await self._generate_call({"refineQuestion": refine, "language": language})
        if not questions:
            raise GenerationError("refinement returned no question")
        return questions[0]

    async def clone_template(self, template_id: str, *, custom_title: Optional[str] = None) -> CloneResult:
        payload: Dict[str, Any] = {"templateId": template_id}
        if custom_title and custom_title.strip():
            payload["customTitle"] = custom_title.strip()
        try:
            resp = await self._post("clone-survey-template", payload)
        except httpx.HTTPError as exc:
            raise TemplateCloneError(f"clone-survey-template unreachable: {exc}") from exc
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if resp.is_error or data.get("error"):
            raise TemplateCloneError(
                str(data.get("error") or f"HTTP {resp.status_code}"),
                status_code=resp.status_code,
                details=data,
            )
        survey_id = data.get("surveyId") or data.get("survey_id")
        if not survey_id:
            raise TemplateCloneError("clone response without survey id", status_code=resp.status_code, details=data)
        return CloneResult(survey_id=str(survey_id), credits_debited=int(data.get("creditsDebited") or 0))
