# convo_gateway/models.py
"""Wire models for the client API and the Conversational AI provisioning API."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TTSVendor(str, Enum):
    MICROSOFT = "microsoft"
    ELEVENLABS = "elevenlabs"


# ---------------------------------------------------------------------------
# Client-facing requests / responses
# ---------------------------------------------------------------------------

class InviteAgentRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    requester_id: Union[int, str]
    channel_name: str
    input_modalities: Optional[List[str]] = None
    output_modalities: Optional[List[str]] = None


class RemoveAgentRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    agent_id: str


class TokenResponse(BaseModel):
    token: str
    uid: str
    channel: str


# Upstream join result (agent_id, create_ts, state, ...). Handed back to the
# client exactly as decoded; only its being a JSON object is checked.
AgentResponse = Dict[str, Any]


# ---------------------------------------------------------------------------
# TTS configuration: a closed union tagged by vendor
# ---------------------------------------------------------------------------

class MicrosoftTTSParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    region: str
    voice_name: str
    rate: float
    volume: float


class ElevenLabsTTSParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: str
    voice_id: str
    model_id: str


class MicrosoftTTSConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    vendor: Literal["microsoft"] = "microsoft"
    params: MicrosoftTTSParams


class ElevenLabsTTSConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    vendor: Literal["elevenlabs"] = "elevenlabs"
    params: ElevenLabsTTSParams


TTSConfig = Annotated[
    Union[MicrosoftTTSConfig, ElevenLabsTTSConfig],
    Field(discriminator="vendor"),
]


# ---------------------------------------------------------------------------
# Provisioning ("join") request
# ---------------------------------------------------------------------------

class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ASRConfig(_Frozen):
    language: str
    task: Optional[str] = None


class SystemMessage(_Frozen):
    role: str
    content: str


class LLMParams(_Frozen):
    model: Optional[str] = None
    max_tokens: int
    temperature: Optional[float] = None
    top_p: Optional[float] = None


class LLMConfig(_Frozen):
    url: Optional[str] = None
    api_key: Optional[str] = None
    system_messages: List[SystemMessage]
    greeting_message: str
    failure_message: str
    max_history: Optional[int] = None
    input_modalities: Optional[List[str]] = None
    output_modalities: Optional[List[str]] = None
    params: LLMParams


class VADConfig(_Frozen):
    silence_duration_ms: int
    speech_duration_ms: Optional[int] = None
    threshold: Optional[float] = None
    interrupt_duration_ms: Optional[int] = None
    prefix_padding_ms: Optional[int] = None


class AdvancedFeatures(_Frozen):
    enable_aivad: bool = False
    enable_bhvs: bool = False


class AgentProperties(_Frozen):
    channel: str
    token: str
    agent_rtc_uid: str
    remote_rtc_uids: List[str]
    enable_string_uid: Optional[bool] = None
    idle_timeout: Optional[int] = None
    advanced_features: Optional[AdvancedFeatures] = None
    asr: ASRConfig
    llm: LLMConfig
    vad: VADConfig
    tts: TTSConfig


class AgentProvisionRequest(_Frozen):
    name: str
    properties: AgentProperties

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)
