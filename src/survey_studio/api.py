from __future__ import annotations

import html
import logging
from typing import Annotated, Any, Dict, Optional

import anyio
import uvicorn
from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from .config import Settings
from .db import init_db
from .errors import GenerationError
from .gateway import LlmGateway
from .prompts import GenerateRequest, build_messages
from .surveys.csv_io import export_csv
from .surveys.schema import count_questions, question_to_wire, questions_from_wire, sections_from_wire
from .surveys.store import SurveyStore, summarize


logger = logging.getLogger(__name__)


def _auth_dependency(
    request: Request,
    token: Optional[str] = Query(default=None),
) -> None:
    settings: Settings = request.app.state.settings
    required = settings.admin_token.strip()
    if not required:
        # No token configured: allow access (dev mode)
        return
    supplied = token or request.headers.get("X-Admin-Token")
    if supplied != required:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


Auth = Annotated[None, Depends(_auth_dependency)]


def _generation_failed(message: str) -> JSONResponse:
    return JSONResponse({"error": message, "questions": []}, status_code=500)


def create_app(
    *,
    settings: Optional[Settings] = None,
    store: Optional[SurveyStore] = None,
    gateway: Optional[LlmGateway] = None,
) -> FastAPI:
    settings = settings or Settings()
    store = store or SurveyStore()
    gateway = gateway or LlmGateway(
        settings.llm_gateway_url,
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        timeout=settings.request_timeout,
    )

    app = FastAPI(title="Survey Studio", version="0.1.0")
    app.state.settings = settings
    app.state.store = store

    @app.on_event("startup")
    def _startup() -> None:
        init_db(store.bind)

    @app.get("/", response_class=RedirectResponse, include_in_schema=False)
    def root(_: Auth):  # type: ignore[no-untyped-def]
        return RedirectResponse(url="/admin/surveys")

    @app.get("/api/health")
    def health() -> dict[str, str]:  # type: ignore[no-untyped-def]
        return {"status": "ok"}

    @app.post("/functions/v1/generate-survey")
    async def generate_survey(payload: Dict[str, Any] = Body(...)) -> Any:
        """Draft or refine questions through the chat-completions gateway.

        Body: {"description": "...", "hasDocument": false, "language": "it",
        "questionCount": 5} or {"refineQuestion": {...}, "language": "it"}
        """
        try:
            req = GenerateRequest.model_validate(payload)
            if req.refineQuestion is None and not (req.description or "").strip():
                raise GenerationError("description is required")
            data = await gateway.complete_json(build_messages(req))
            questions = questions_from_wire(data.get("questions"))
        except (GenerationError, ValueError) as exc:
            logger.error("generate-survey failed: %s", exc)
            return _generation_failed(str(exc))
        if req.refineQuestion is not None:
            questions = questions[:1]
        elif req.questionCount and len(questions) > req.questionCount:
            questions = questions[: req.questionCount]
        logger.info("Generated %d questions", len(questions))
        return {"questions": [question_to_wire(q) for q in questions]}

    @app.get("/s/{share_token}")
    async def public_form(share_token: str) -> Any:
        record = await anyio.to_thread.run_sync(store.get_by_share_token, share_token)
        if record is None or not record.is_published or not record.is_active:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Survey not found")
        if record.is_expired():
            return JSONResponse(
                {"error": "expired", "expired_message": record.expired_message or ""},
                status_code=status.HTTP_410_GONE,
            )
        return {
            "id": record.id,
            "title": record.title,
            "description": record.description,
            "language": record.language,
            "sections": record.sections,
            "expires_at": record.expires_at.isoformat() if record.expires_at else None,
        }

    @app.get("/admin/surveys", response_class=HTMLResponse)
    def list_surveys(_: Auth) -> str:  # type: ignore[no-untyped-def]
        records = store.list_all()
        base = settings.public_base_url.rstrip("/")
        rows = []
        for r in records:
            n_questions = count_questions(sections_from_wire(r.sections))
            link = (
                f"<a href='{base}/s/{r.share_token}'>open</a>"
                if r.is_published and r.is_active
                else "-"
            )
            rows.append(
                f"<tr>"
                f"<td>{html.escape(r.title)}</td>"
                f"<td><a href='/admin/users/{html.escape(r.user_id)}/surveys'>{html.escape(r.user_id)}</a></td>"
                f"<td>{r.status}</td>"
                f"<td>{len(r.sections or [])} / {n_questions}</td>"
                f"<td>{r.updated_at:%Y-%m-%d %H:%M}</td>"
                f"<td>{link} &nbsp;<a href='/admin/surveys/{r.id}/export.csv'>CSV</a>"
                f"<form method='post' action='/admin/surveys/{r.id}/delete' onsubmit=\"return confirm('Delete this survey?');\">"
                f"<button type='submit' style='color:#b00;'>Delete</button>"
                f"</form>"
                f"</td>"
                f"</tr>"
            )
        body = "".join(rows) or "<tr><td colspan='6'>No surveys yet</td></tr>"
        return f"""
        <html>
          <head>
            <meta charset='utf-8' />
            <title>Survey Studio Admin: Surveys</title>
            <style>
              body {{ font-family: system-ui, sans-serif; padding: 20px; }}
              table {{ border-collapse: collapse; width: 100%; }}
              th, td {{ border: 1px solid #ddd; padding: 8px; }}
              th {{ background: #f6f6f6; text-align: left; }}
            </style>
          </head>
          <body>
            <h1>Surveys</h1>
            <table>
              <thead>
                <tr>
                  <th>Title</th>
                  <th>Owner</th>
                  <th>Status</th>
                  <th>Sections / Questions</th>
                  <th>Updated</th>
                  <th>Actions</th>
                </tr>
              </thead>
              <tbody>
                {body}
              </tbody>
            </table>
          </body>
        </html>
        """

    @app.get("/admin/users/{user_id}/surveys")
    def user_surveys(user_id: str, _: Auth) -> list[dict[str, Any]]:  # type: ignore[no-untyped-def]
        return [summarize(r) for r in store.list_for_user(user_id)]

    @app.post("/admin/surveys/{survey_id}/delete")
    def delete_survey(survey_id: str, _: Auth):  # type: ignore[no-untyped-def]
        if not store.delete(survey_id):
            raise HTTPException(status_code=404, detail="Survey not found")
        logger.info("Deleted survey %s", survey_id)
        return RedirectResponse(url="/admin/surveys", status_code=303)

    @app.get("/admin/surveys/{survey_id}/export.csv")
    def export_survey(survey_id: str, _: Auth) -> Response:  # type: ignore[no-untyped-def]
        record = store.get(survey_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Survey not found")
        content = export_csv(sections_from_wire(record.sections))
        return Response(
            content=content,
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename=survey-{survey_id}.csv"},
        )

    return app


async def run_api() -> None:
    settings = Settings()
    app = create_app(settings=settings)
    config = uvicorn.Config(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="info",
    )
    server = uvicorn.Server(config)
    await server.serve()
