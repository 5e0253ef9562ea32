from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application runtime settings loaded from environment/.env."""

    database_url: str = Field(default="sqlite:///./survey_studio.db", alias="DATABASE_URL")

    # Hosted functions (generate-survey, clone-survey-template)
    functions_url: str = Field(default="http://127.0.0.1:8080/functions/v1", alias="FUNCTIONS_URL")
    functions_token: str = Field(default="", alias="FUNCTIONS_TOKEN")
    request_timeout: float = Field(default=60.0, alias="REQUEST_TIMEOUT")

    # OpenAI-compatible gateway used by the generate-survey function we serve
    llm_gateway_url: str = Field(default="https://ai.gateway.lovable.dev/v1/chat/completions", alias="LLM_GATEWAY_URL")
    llm_api_key: str = Field(default="", alias="LLM_API_KEY")
    llm_model: str = Field(default="google/gemini-2.5-flash", alias="LLM_MODEL")

    api_host: str = Field(default="127.0.0.1", alias="API_HOST")
    api_port: int = Field(default=8080, alias="API_PORT")
    admin_token: str = Field(default="", alias="ADMIN_TOKEN")
    public_base_url: str = Field(default="http://127.0.0.1:8080", alias="PUBLIC_BASE_URL")

    # Editor behaviour
    autosave_delay: float = Field(default=1.0, alias="AUTOSAVE_DELAY")
    history_limit: int = Field(default=50, alias="HISTORY_LIMIT")
    default_language: str = Field(default="it", alias="DEFAULT_LANGUAGE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        extra="ignore",
    )
