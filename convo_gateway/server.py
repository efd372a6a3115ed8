# convo_gateway/server.py
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry import metrics, trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from .config import Settings, get_settings
from .credentials import CredentialIssuer, Role
from .errors import Failure, Ok, Result
from .models import TokenResponse
from .orchestrator import InviteOrchestrator, RemoveOrchestrator
from .provisioning_client import ProvisioningClient
from .request_context import clear_request_context, set_request_context
from .tracing import TRACE_HEADER, ensure_trace_id, set_trace_id
from .validation import (
    ConfigScope,
    check_configuration,
    check_content_type,
    parse_json_body,
    validate_invite_request,
    validate_remove_request,
    validate_token_query,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

_meter = metrics.get_meter(__name__)
_m_invites = _meter.create_counter("agent_invite_count")
_m_invite_failures = _meter.create_counter("agent_invite_failure_count")
_m_removals = _meter.create_counter("agent_remove_count")
_m_remove_failures = _meter.create_counter("agent_remove_failure_count")
_m_tokens = _meter.create_counter("channel_token_issued_count")

router = APIRouter()


def _failure_response(failure: Failure) -> JSONResponse:
    logger.warning(
        f"Request failed kind={failure.kind.value} status={failure.status_code} "
        f"field={failure.field or '-'} error={failure.message}"
    )
    return JSONResponse(status_code=failure.status_code, content=failure.to_body())


async def _preflight(request: Request, scope: ConfigScope) -> Result[Optional[Dict[str, Any]]]:
    """Configuration, then content type, then body presence; in that order."""
    settings: Settings = request.app.state.settings
    failure = check_configuration(settings, scope)
    if failure:
        return failure
    if request.method != "POST":
        return Ok(None)
    failure = check_content_type(request.method, request.headers.get("content-type"))
    if failure:
        return failure
    return parse_json_body(await request.body())


@router.get("/")
def read_root():
    return {"service": "Conversational AI Agent Gateway", "status": "running"}


@router.get("/ping")
def ping():
    return {"message": "pong"}


@router.get("/token")
async def get_token(request: Request, uid: Optional[str] = None, channel: Optional[str] = None):
    """Mint a publisher token for a client.

    ``uid`` defaults to 0 and ``channel`` to a generated
    ``ai-conversation-<epochMillis>-<random>`` name.
    """
    pre = await _preflight(request, ConfigScope.TOKEN)
    if isinstance(pre, Failure):
        return _failure_response(pre)

    params = validate_token_query(uid, channel)
    if isinstance(params, Failure):
        return _failure_response(params)

    uid_value = params.value["uid"]
    channel_name = params.value["channel"]
    set_request_context(channel_name=channel_name)
    issuer: CredentialIssuer = request.app.state.issuer
    with tracer.start_as_current_span("api.token", attributes={"channel": channel_name}):
        credential = issuer.issue(channel_name, identity=uid_value, role=Role.PUBLISHER)
    if isinstance(credential, Failure):
        return _failure_response(credential)

    _m_tokens.add(1)
    return TokenResponse(token=credential.value.token, uid=str(uid_value), channel=channel_name).model_dump()


@router.post("/agent/invite")
async def invite_agent(request: Request):
    """Start a conversational agent in the requester's channel."""
    pre = await _preflight(request, ConfigScope.AGENT)
    if isinstance(pre, Failure):
        return _failure_response(pre)

    settings: Settings = request.app.state.settings
    validated = validate_invite_request(pre.value, settings.REQUESTER_ID_POLICY)
    if isinstance(validated, Failure):
        return _failure_response(validated)

    req = validated.value
    set_request_context(channel_name=req.channel_name, requester_id=str(req.requester_id))
    orchestrator: InviteOrchestrator = request.app.state.invite_orchestrator
    with tracer.start_as_current_span("api.agent_invite", attributes={"channel": req.channel_name}):
        result = await orchestrator.invite(req)

    if isinstance(result, Failure):
        _m_invite_failures.add(1, attributes={"kind": result.kind.value})
        return _failure_response(result)
    _m_invites.add(1)
    return result.value


@router.post("/agent/remove")
async def remove_agent(request: Request):
    """Ask the provisioning service to stop an agent."""
    pre = await _preflight(request, ConfigScope.AGENT)
    if isinstance(pre, Failure):
        return _failure_response(pre)

    validated = validate_remove_request(pre.value)
    if isinstance(validated, Failure):
        return _failure_response(validated)

    req = validated.value
    set_request_context(agent_id=req.agent_id)
    orchestrator: RemoveOrchestrator = request.app.state.remove_orchestrator
    with tracer.start_as_current_span("api.agent_remove", attributes={"agent_id": req.agent_id}):
        result = await orchestrator.remove(req)

    if isinstance(result, Failure):
        _m_remove_failures.add(1, attributes={"kind": result.kind.value})
        return _failure_response(result)
    _m_removals.add(1)
    return result.value


def create_app(settings: Optional[Settings] = None, issuer: Optional[CredentialIssuer] = None) -> FastAPI:
    """Build the gateway app around one immutable ``Settings`` value."""
    settings = settings or get_settings()
    issuer = issuer or CredentialIssuer(settings.AGORA_APP_ID or "", settings.AGORA_APP_CERTIFICATE or "")
    client = ProvisioningClient(settings)

    app = FastAPI(title="Conversational AI Agent Gateway", description="Channel tokens and agent invite/remove")
    app.state.settings = settings
    app.state.issuer = issuer
    app.state.invite_orchestrator = InviteOrchestrator(settings, issuer, client)
    app.state.remove_orchestrator = RemoveOrchestrator(client)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.CORS_ALLOW_ORIGINS),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_trace_context(request: Request, call_next):
        set_trace_id(None)
        clear_request_context()
        trace_id = ensure_trace_id(request.headers.get(TRACE_HEADER))
        logger.info(f"HTTP {request.method} {request.url.path} starting")
        response = await call_next(request)
        response.headers[TRACE_HEADER] = trace_id
        logger.info(f"HTTP {request.method} {request.url.path} completed status={response.status_code}")
        return response

    app.include_router(router)
    try:
        FastAPIInstrumentor.instrument_app(app)
    except Exception as e:
        logger.error(f"Failed to instrument FastAPI app: {e}")
    return app


def run_server(settings: Optional[Settings] = None) -> None:
    import uvicorn

    settings = settings or get_settings()
    logger.info(f"Starting FastAPI server on {settings.HOST}:{settings.PORT}")
    uvicorn.run(create_app(settings), host=settings.HOST, port=int(settings.PORT))
