# File: tests/test_orchestrator.py
import asyncio
import re

import aiohttp
import pytest
from aioresponses import aioresponses

from convo_gateway.credentials import CredentialIssuer
from convo_gateway.errors import ErrorKind, Failure, Ok
from convo_gateway.models import InviteAgentRequest, RemoveAgentRequest
from convo_gateway.orchestrator import InviteOrchestrator, RemoveOrchestrator
from convo_gateway.provisioning_client import ProvisioningClient
from conftest import APP_ID, BASE_URL, JOIN_URL, FakeSigner, make_settings

AGENT_RESPONSE = {"agent_id": "A42AC47HJ83", "create_ts": 1737111452, "state": "RUNNING"}


def _calls(m, url):
    keys = [k for k in m.requests.keys() if k[0] == "POST" and str(k[1]) == url]
    return [call for k in keys for call in m.requests[k]]


def _invite_orchestrator(settings=None, signer=None):
    settings = settings or make_settings()
    signer = signer or FakeSigner()
    issuer = CredentialIssuer(settings.AGORA_APP_ID, settings.AGORA_APP_CERTIFICATE, signer=signer)
    return InviteOrchestrator(settings, issuer, ProvisioningClient(settings))


# ========== Request composition ==========

def test_build_request_numeric_requester():
    orchestrator = _invite_orchestrator()
    req = InviteAgentRequest(requester_id="1234", channel_name="demo-chan")
    tts = {"vendor": "microsoft", "params": {"key": "k", "region": "r", "voice_name": "v", "rate": 1.0, "volume": 50.0}}

    payload = orchestrator.build_request(req, "conversation-1-abcdef", "agent-token", tts).to_payload()
    props = payload["properties"]

    assert payload["name"] == "conversation-1-abcdef"
    assert props["channel"] == "demo-chan"
    assert props["token"] == "agent-token"
    assert props["agent_rtc_uid"] == "Agent"
    assert props["remote_rtc_uids"] == ["1234"]
    assert props["enable_string_uid"] is False
    assert props["idle_timeout"] == 30
    assert props["asr"] == {"language": "en-US", "task": "conversation"}
    assert props["vad"] == {
        "silence_duration_ms": 480,
        "speech_duration_ms": 15000,
        "threshold": 0.5,
        "interrupt_duration_ms": 160,
        "prefix_padding_ms": 300,
    }
    assert props["advanced_features"] == {"enable_aivad": False, "enable_bhvs": False}
    assert props["tts"]["vendor"] == "microsoft"


@pytest.mark.parametrize(
    "requester_id, expected",
    [("1234", False), (1234, False), (0, False), ("user-1234", True), ("x", True), ("12-34", False)],
)
def test_enable_string_uid_follows_letters(requester_id, expected):
    orchestrator = _invite_orchestrator()
    req = InviteAgentRequest(requester_id=requester_id, channel_name="demo-chan")
    tts = {"vendor": "elevenlabs", "params": {"api_key": "k", "voice_id": "v", "model_id": "m"}}

    props = orchestrator.build_request(req, "n", "t", tts).properties
    assert props.enable_string_uid is expected
    assert props.remote_rtc_uids == [str(requester_id)]


def test_llm_section_uses_settings_and_default_modalities():
    orchestrator = _invite_orchestrator(make_settings(GREETING_MESSAGE="Hi there"))
    req = InviteAgentRequest(requester_id="1", channel_name="demo-chan")
    tts = {"vendor": "elevenlabs", "params": {"api_key": "k", "voice_id": "v", "model_id": "m"}}

    llm = orchestrator.build_request(req, "n", "t", tts).to_payload()["properties"]["llm"]

    assert llm["url"] == "https://llm.test/v1/chat/completions"
    assert llm["api_key"] == "llm-token"
    assert llm["greeting_message"] == "Hi there"
    assert llm["failure_message"] == "Please wait a moment."
    assert llm["system_messages"][0]["role"] == "system"
    assert llm["max_history"] == 10
    assert llm["params"] == {"model": "gpt-4o-mini", "max_tokens": 1024, "temperature": 0.7, "top_p": 0.95}
    assert llm["input_modalities"] == ["text"]
    assert llm["output_modalities"] == ["text", "audio"]


def test_modalities_precedence_request_then_settings():
    orchestrator = _invite_orchestrator(make_settings(INPUT_MODALITIES="text, audio", OUTPUT_MODALITIES="audio"))
    tts = {"vendor": "elevenlabs", "params": {"api_key": "k", "voice_id": "v", "model_id": "m"}}

    from_settings = orchestrator.build_request(
        InviteAgentRequest(requester_id="1", channel_name="demo-chan"), "n", "t", tts
    ).properties.llm
    assert from_settings.input_modalities == ["text", "audio"]
    assert from_settings.output_modalities == ["audio"]

    from_request = orchestrator.build_request(
        InviteAgentRequest(requester_id="1", channel_name="demo-chan", input_modalities=["audio"]), "n", "t", tts
    ).properties.llm
    assert from_request.input_modalities == ["audio"]

    # An explicit empty list is the caller's choice, not a missing value
    explicit_empty = orchestrator.build_request(
        InviteAgentRequest(requester_id="1", channel_name="demo-chan", input_modalities=[]), "n", "t", tts
    ).properties.llm
    assert explicit_empty.input_modalities == []
    assert explicit_empty.output_modalities == ["audio"]


# ========== Invite flow ==========

@pytest.mark.asyncio
async def test_invite_success_passes_upstream_response_through():
    signer = FakeSigner()
    orchestrator = _invite_orchestrator(signer=signer)
    with aioresponses() as m:
        m.post(JOIN_URL, payload=AGENT_RESPONSE)

        result = await orchestrator.invite(InviteAgentRequest(requester_id="1234", channel_name="demo-chan"))

        assert isinstance(result, Ok)
        assert result.value == AGENT_RESPONSE

        calls = _calls(m, JOIN_URL)
        assert len(calls) == 1
        sent = calls[0].kwargs["json"]
        assert re.match(r"^conversation-\d+-[a-z0-9]{6}$", sent["name"])
        assert sent["properties"]["remote_rtc_uids"] == ["1234"]
        assert sent["properties"]["enable_string_uid"] is False
        assert sent["properties"]["token"] == "token-1-demo-chan-Agent"
        assert calls[0].kwargs["auth"] == aiohttp.BasicAuth("customer-id", "customer-secret")

    # The agent credential is minted for the invite's channel with the agent identity
    assert signer.calls[0]["channel"] == "demo-chan"
    assert signer.calls[0]["identity"] == "Agent"


@pytest.mark.asyncio
async def test_invite_uses_configured_agent_uid():
    signer = FakeSigner()
    orchestrator = _invite_orchestrator(make_settings(AGENT_UID="Assistant"), signer=signer)
    with aioresponses() as m:
        m.post(JOIN_URL, payload=AGENT_RESPONSE)
        await orchestrator.invite(InviteAgentRequest(requester_id="u1", channel_name="demo-chan"))
        sent = _calls(m, JOIN_URL)[0].kwargs["json"]

    assert sent["properties"]["agent_rtc_uid"] == "Assistant"
    assert signer.calls[0]["identity"] == "Assistant"


@pytest.mark.asyncio
async def test_invite_upstream_error_keeps_status_and_body():
    orchestrator = _invite_orchestrator()
    with aioresponses() as m:
        m.post(JOIN_URL, status=503, body="Service Unavailable")

        result = await orchestrator.invite(InviteAgentRequest(requester_id="1234", channel_name="demo-chan"))

        assert isinstance(result, Failure)
        assert result.kind is ErrorKind.UPSTREAM
        assert result.status_code == 503
        assert result.to_body() == {"error": "Failed to start conversation: 503", "details": "Service Unavailable"}
        # No retry
        assert len(_calls(m, JOIN_URL)) == 1


@pytest.mark.asyncio
async def test_invite_upstream_json_error_body_is_decoded():
    orchestrator = _invite_orchestrator()
    with aioresponses() as m:
        m.post(JOIN_URL, status=409, payload={"detail": "task conflict", "reason": "TaskConflict"})
        result = await orchestrator.invite(InviteAgentRequest(requester_id="1234", channel_name="demo-chan"))

    assert result.status_code == 409
    assert result.details == {"detail": "task conflict", "reason": "TaskConflict"}


@pytest.mark.asyncio
async def test_invite_timeout_is_transport_error():
    orchestrator = _invite_orchestrator()
    with aioresponses() as m:
        m.post(JOIN_URL, exception=asyncio.TimeoutError())
        result = await orchestrator.invite(InviteAgentRequest(requester_id="1234", channel_name="demo-chan"))

    assert result.kind is ErrorKind.TRANSPORT
    assert result.status_code == 500
    assert "details" not in result.to_body()


@pytest.mark.asyncio
async def test_invite_tts_misconfiguration_skips_upstream():
    orchestrator = _invite_orchestrator(make_settings(TTS_VENDOR="polly"))
    with aioresponses() as m:
        result = await orchestrator.invite(InviteAgentRequest(requester_id="1234", channel_name="demo-chan"))
        assert not m.requests

    assert result.kind is ErrorKind.CONFIGURATION
    assert result.message == "Unsupported TTS vendor: polly"


@pytest.mark.asyncio
async def test_invite_non_json_success_body_is_upstream_failure():
    orchestrator = _invite_orchestrator()
    with aioresponses() as m:
        m.post(JOIN_URL, status=200, body="<html>ok</html>")
        result = await orchestrator.invite(InviteAgentRequest(requester_id="1234", channel_name="demo-chan"))

    assert result.kind is ErrorKind.UPSTREAM
    assert result.status_code == 502


@pytest.mark.asyncio
async def test_invite_success_body_types_are_not_coerced():
    orchestrator = _invite_orchestrator()
    upstream = {"agent_id": 12345, "create_ts": "1737111452", "state": "RUNNING", "extra": [1, 2]}
    with aioresponses() as m:
        m.post(JOIN_URL, payload=upstream)
        result = await orchestrator.invite(InviteAgentRequest(requester_id="1234", channel_name="demo-chan"))

    assert isinstance(result, Ok)
    assert result.value == upstream
    assert result.value["create_ts"] == "1737111452"
    assert result.value["agent_id"] == 12345


@pytest.mark.asyncio
async def test_invite_json_array_success_body_is_upstream_failure():
    orchestrator = _invite_orchestrator()
    with aioresponses() as m:
        m.post(JOIN_URL, payload=["A1"])
        result = await orchestrator.invite(InviteAgentRequest(requester_id="1234", channel_name="demo-chan"))

    assert result.kind is ErrorKind.UPSTREAM
    assert result.status_code == 502


# ========== Remove flow ==========

@pytest.mark.asyncio
async def test_remove_success():
    settings = make_settings()
    url = f"{BASE_URL}/{APP_ID}/agents/A42AC47HJ83/leave"
    with aioresponses() as m:
        m.post(url, payload={})
        result = await RemoveOrchestrator(ProvisioningClient(settings)).remove(RemoveAgentRequest(agent_id="A42AC47HJ83"))
        calls = _calls(m, url)

    assert result == Ok({"success": True})
    assert len(calls) == 1
    assert calls[0].kwargs["auth"] == aiohttp.BasicAuth("customer-id", "customer-secret")


@pytest.mark.asyncio
async def test_remove_upstream_not_found():
    settings = make_settings()
    url = f"{BASE_URL}/{APP_ID}/agents/missing/leave"
    with aioresponses() as m:
        m.post(url, status=404, payload={"detail": "agent not found"})
        result = await RemoveOrchestrator(ProvisioningClient(settings)).remove(RemoveAgentRequest(agent_id="missing"))

    assert result.status_code == 404
    assert result.to_body() == {"error": "Failed to remove agent: 404", "details": {"detail": "agent not found"}}


@pytest.mark.asyncio
async def test_remove_connection_error_is_transport_error():
    settings = make_settings()
    url = f"{BASE_URL}/{APP_ID}/agents/A1/leave"
    with aioresponses() as m:
        m.post(url, exception=aiohttp.ClientConnectionError("connection refused"))
        result = await RemoveOrchestrator(ProvisioningClient(settings)).remove(RemoveAgentRequest(agent_id="A1"))

    assert result.kind is ErrorKind.TRANSPORT
    assert "connection refused" not in result.message


def test_leave_url_quotes_agent_id():
    client = ProvisioningClient(make_settings())
    assert client.leave_url("a/b c") == f"{BASE_URL}/{APP_ID}/agents/a%2Fb%20c/leave"
