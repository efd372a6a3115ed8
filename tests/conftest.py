# File: tests/conftest.py
import sys
from pathlib import Path

import pytest

# Ensure project root is importable so we can import the 'convo_gateway' package
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from convo_gateway.config import Settings
from convo_gateway.credentials import CredentialIssuer

BASE_URL = "https://convo.test/api/conversational-ai-agent/v2/projects"
APP_ID = "0123456789abcdef0123456789abcdef"
JOIN_URL = f"{BASE_URL}/{APP_ID}/join"


def make_settings(**overrides) -> Settings:
    """Fully configured settings (Microsoft TTS) with per-test overrides."""
    values = dict(
        AGORA_APP_ID=APP_ID,
        AGORA_APP_CERTIFICATE="fedcba9876543210fedcba9876543210",
        AGORA_CONVO_AI_BASE_URL=BASE_URL,
        AGORA_CUSTOMER_ID="customer-id",
        AGORA_CUSTOMER_SECRET="customer-secret",
        LLM_URL="https://llm.test/v1/chat/completions",
        LLM_TOKEN="llm-token",
        LLM_MODEL="gpt-4o-mini",
        TTS_VENDOR="microsoft",
        MICROSOFT_TTS_KEY="ms-key",
        MICROSOFT_TTS_REGION="eastus",
        MICROSOFT_TTS_VOICE_NAME="en-US-AndrewMultilingualNeural",
        MICROSOFT_TTS_RATE=1.1,
        MICROSOFT_TTS_VOLUME=70,
        ELEVENLABS_API_KEY=None,
        ELEVENLABS_VOICE_ID=None,
        ELEVENLABS_MODEL_ID=None,
        INPUT_MODALITIES=None,
        OUTPUT_MODALITIES=None,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeSigner:
    """Stands in for the token builder; every call yields a distinct token."""

    def __init__(self):
        self.calls = []

    def __call__(self, app_id, app_certificate, channel, identity, role, expire_ts):
        self.calls.append(
            {
                "app_id": app_id,
                "app_certificate": app_certificate,
                "channel": channel,
                "identity": identity,
                "role": role,
                "expire_ts": expire_ts,
            }
        )
        return f"token-{len(self.calls)}-{channel}-{identity}"


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def issuer(settings, signer) -> CredentialIssuer:
    return CredentialIssuer(settings.AGORA_APP_ID, settings.AGORA_APP_CERTIFICATE, signer=signer)
