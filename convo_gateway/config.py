from __future__ import annotations
from typing import List, Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant. Pretend that the text input is audio, and you are "
    "responding to it. Speak fast, clearly, and concisely."
)


class Settings(BaseSettings):
    # =================================================================
    # 1. CHANNEL TOKEN SIGNING
    # Required by every route that mints a channel token
    # =================================================================
    AGORA_APP_ID: Optional[str] = None
    AGORA_APP_CERTIFICATE: Optional[str] = None

    # HTTP listener
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    CORS_ALLOW_ORIGINS: List[str] = ["*"]

    # =================================================================
    # 2. CONVERSATIONAL AI PROVISIONING SERVICE (agent routes)
    # =================================================================
    AGORA_CONVO_AI_BASE_URL: Optional[str] = None
    AGORA_CUSTOMER_ID: Optional[str] = None
    AGORA_CUSTOMER_SECRET: Optional[str] = None

    # Identity the agent joins the channel with
    AGENT_UID: str = "Agent"

    # Bounded wait on the join/leave call
    PROVISION_TIMEOUT_SEC: float = 10.0
    PROVISION_CONNECT_TIMEOUT_SEC: float = 5.0

    # "non_empty" accepts any non-blank string requester id,
    # "alphanumeric" restricts it to letters, digits and hyphens.
    REQUESTER_ID_POLICY: Literal["non_empty", "alphanumeric"] = "non_empty"

    # =================================================================
    # 3. LLM BACKEND
    # =================================================================
    LLM_URL: Optional[str] = None
    LLM_TOKEN: Optional[str] = None
    LLM_MODEL: Optional[str] = None

    # Comma-separated, e.g. "text,audio"; a request may still override them
    INPUT_MODALITIES: Optional[str] = None
    OUTPUT_MODALITIES: Optional[str] = None

    SYSTEM_PROMPT: str = DEFAULT_SYSTEM_PROMPT
    GREETING_MESSAGE: str = "Hello! How can I assist you today?"
    FAILURE_MESSAGE: str = "Please wait a moment."

    # =================================================================
    # 4. TEXT-TO-SPEECH ("microsoft" or "elevenlabs")
    # =================================================================
    TTS_VENDOR: Optional[str] = None

    MICROSOFT_TTS_KEY: Optional[str] = None
    MICROSOFT_TTS_REGION: Optional[str] = None
    MICROSOFT_TTS_VOICE_NAME: Optional[str] = None
    MICROSOFT_TTS_RATE: Optional[float] = None
    MICROSOFT_TTS_VOLUME: Optional[float] = None

    ELEVENLABS_API_KEY: Optional[str] = None
    ELEVENLABS_VOICE_ID: Optional[str] = None
    ELEVENLABS_MODEL_ID: Optional[str] = None

    # =================================================================
    # 5. OBSERVABILITY (main.py / OpenTelemetry)
    # =================================================================
    OTEL_ENABLED: bool = False
    OTEL_SERVICE_NAME: str = "convo-gateway"
    OTEL_SERVICE_NAMESPACE: str = "convo"
    OTEL_RESOURCE_ATTRIBUTES: Optional[str] = None

    # Protocol: "grpc" or "http/protobuf"
    OTEL_EXPORTER_OTLP_PROTOCOL: Optional[str] = None
    OTEL_EXPORTER_OTLP_INSECURE: bool = False

    # General Endpoint (used if specific ones aren't set)
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[str] = None
    OTEL_EXPORTER_OTLP_HEADERS: Optional[str] = None

    OTEL_EXPORTER_OTLP_TRACES_ENDPOINT: Optional[str] = None
    OTEL_EXPORTER_OTLP_METRICS_ENDPOINT: Optional[str] = None

    OTEL_ENABLE_LOGS: bool = False
    OTEL_EXPORTER_OTLP_LOGS_ENDPOINT: Optional[str] = None

    LOG_LEVEL: str = "INFO"

    # Read from the environment and .env; the value is immutable once built
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )


# Built once at startup and then handed to create_app() and the components
_settings: Optional[Settings] = None

def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
