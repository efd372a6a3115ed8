# convo_gateway/orchestrator.py
"""
Invite and remove flows.

``InviteOrchestrator`` turns a validated ``InviteAgentRequest`` into the
provisioning service's join request: it mints the agent's own channel token,
resolves the TTS vendor config, fills in the fixed ASR/LLM/VAD settings and
forwards the result. ``RemoveOrchestrator`` forwards a leave call for an agent
id. Neither keeps state between requests and neither retries.
"""

import logging
from typing import List, Optional

from .config import Settings
from .credentials import TOKEN_TTL_SECONDS, CredentialIssuer, Role
from .errors import ErrorKind, Failure, Ok, Result
from .models import (
    AdvancedFeatures,
    AgentProperties,
    AgentProvisionRequest,
    AgentResponse,
    ASRConfig,
    InviteAgentRequest,
    LLMConfig,
    LLMParams,
    RemoveAgentRequest,
    SystemMessage,
    TTSConfig,
    VADConfig,
)
from .provisioning_client import ProvisioningClient
from .tts import resolve_tts_config
from .utils import is_string_uid, parse_modalities, unique_name

logger = logging.getLogger(__name__)

SESSION_NAME_PREFIX = "conversation"

DEFAULT_INPUT_MODALITIES = ["text"]
DEFAULT_OUTPUT_MODALITIES = ["text", "audio"]

ASR_LANGUAGE = "en-US"
ASR_TASK = "conversation"

IDLE_TIMEOUT_SEC = 30
LLM_MAX_HISTORY = 10
LLM_MAX_TOKENS = 1024
LLM_TEMPERATURE = 0.7
LLM_TOP_P = 0.95

# VAD tuning; deployment constants, never taken from the request
VAD_SILENCE_DURATION_MS = 480
VAD_SPEECH_DURATION_MS = 15000
VAD_THRESHOLD = 0.5
VAD_INTERRUPT_DURATION_MS = 160
VAD_PREFIX_PADDING_MS = 300


class InviteOrchestrator:
    def __init__(self, settings: Settings, issuer: CredentialIssuer, client: ProvisioningClient):
        self.settings = settings
        self.issuer = issuer
        self.client = client

    def _modalities(self, requested: Optional[List[str]], configured: Optional[str], default: List[str]) -> List[str]:
        if requested is not None:
            return list(requested)
        return list(parse_modalities(configured) or default)

    def build_request(
        self,
        req: InviteAgentRequest,
        session_name: str,
        agent_token: str,
        tts: TTSConfig,
    ) -> AgentProvisionRequest:
        """Compose the join request. The requester is sent as a one-element uid list of strings."""
        settings = self.settings
        requester_uid = str(req.requester_id)
        return AgentProvisionRequest(
            name=session_name,
            properties=AgentProperties(
                channel=req.channel_name,
                token=agent_token,
                agent_rtc_uid=settings.AGENT_UID,
                remote_rtc_uids=[requester_uid],
                enable_string_uid=is_string_uid(requester_uid),
                idle_timeout=IDLE_TIMEOUT_SEC,
                # Account-level features; both must be enabled by the provider first
                advanced_features=AdvancedFeatures(enable_aivad=False, enable_bhvs=False),
                asr=ASRConfig(language=ASR_LANGUAGE, task=ASR_TASK),
                llm=LLMConfig(
                    url=settings.LLM_URL,
                    api_key=settings.LLM_TOKEN,
                    system_messages=[SystemMessage(role="system", content=settings.SYSTEM_PROMPT)],
                    greeting_message=settings.GREETING_MESSAGE,
                    failure_message=settings.FAILURE_MESSAGE,
                    max_history=LLM_MAX_HISTORY,
                    params=LLMParams(
                        model=settings.LLM_MODEL,
                        max_tokens=LLM_MAX_TOKENS,
                        temperature=LLM_TEMPERATURE,
                        top_p=LLM_TOP_P,
                    ),
                    input_modalities=self._modalities(
                        req.input_modalities, settings.INPUT_MODALITIES, DEFAULT_INPUT_MODALITIES
                    ),
                    output_modalities=self._modalities(
                        req.output_modalities, settings.OUTPUT_MODALITIES, DEFAULT_OUTPUT_MODALITIES
                    ),
                ),
                vad=VADConfig(
                    silence_duration_ms=VAD_SILENCE_DURATION_MS,
                    speech_duration_ms=VAD_SPEECH_DURATION_MS,
                    threshold=VAD_THRESHOLD,
                    interrupt_duration_ms=VAD_INTERRUPT_DURATION_MS,
                    prefix_padding_ms=VAD_PREFIX_PADDING_MS,
                ),
                tts=tts,
            ),
        )

    async def invite(self, req: InviteAgentRequest) -> Result[AgentResponse]:
        session_name = unique_name(SESSION_NAME_PREFIX)

        credential = self.issuer.issue(
            req.channel_name,
            identity=self.settings.AGENT_UID,
            role=Role.PUBLISHER,
            ttl_seconds=TOKEN_TTL_SECONDS,
        )
        if isinstance(credential, Failure):
            return credential

        tts = resolve_tts_config(self.settings.TTS_VENDOR, self.settings)
        if isinstance(tts, Failure):
            return tts

        provision = self.build_request(req, session_name, credential.value.token, tts.value)
        logger.info(
            f"Starting agent session={session_name} channel={req.channel_name} "
            f"requester={provision.properties.remote_rtc_uids[0]} "
            f"string_uid={provision.properties.enable_string_uid} tts={tts.value.vendor}"
        )

        result = await self.client.join(provision.to_payload())
        if isinstance(result, Failure):
            return result

        response = result.value
        if not isinstance(response, dict):
            logger.error(f"Unexpected join response body: {response!r}")
            return Failure(ErrorKind.UPSTREAM, "Failed to start conversation: invalid response", details=response)
        logger.info(f"Agent started agent_id={response.get('agent_id')} state={response.get('state')}")
        return Ok(response)


class RemoveOrchestrator:
    def __init__(self, client: ProvisioningClient):
        self.client = client

    async def remove(self, req: RemoveAgentRequest) -> Result[dict]:
        # The agent id is not checked against anything local; the provider decides.
        result = await self.client.leave(req.agent_id)
        if isinstance(result, Failure):
            return result
        logger.info(f"Agent removed agent_id={req.agent_id}")
        return Ok({"success": True})
