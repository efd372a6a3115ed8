# convo_gateway/provisioning_client.py
"""
Client for the Conversational AI provisioning service.

Two calls are made: ``POST {base}/{appId}/join`` to start an agent and
``POST {base}/{appId}/agents/{agentId}/leave`` to stop it. Both use HTTP Basic
auth with the customer id/secret. Nothing is retried: a non-2xx status becomes
an upstream failure carrying that status and body, and a network error or
timeout becomes a transport failure.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import aiohttp

from .config import Settings
from .errors import Ok, Result, transport_error, upstream_error
from .tracing import outbound_headers

logger = logging.getLogger(__name__)


def _decode_body(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


class ProvisioningClient:
    def __init__(self, settings: Settings):
        self.base_url = (settings.AGORA_CONVO_AI_BASE_URL or "").rstrip("/")
        self.app_id = settings.AGORA_APP_ID or ""
        self.auth = aiohttp.BasicAuth(settings.AGORA_CUSTOMER_ID or "", settings.AGORA_CUSTOMER_SECRET or "")
        self.timeout = aiohttp.ClientTimeout(
            total=float(settings.PROVISION_TIMEOUT_SEC),
            connect=float(settings.PROVISION_CONNECT_TIMEOUT_SEC),
        )
        logger.info(
            f"ProvisioningClient base_url={self.base_url} (timeout total={self.timeout.total}s, connect={self.timeout.connect}s)"
        )

    def join_url(self) -> str:
        return f"{self.base_url}/{self.app_id}/join"

    def leave_url(self, agent_id: str) -> str:
        return f"{self.base_url}/{self.app_id}/agents/{quote(agent_id, safe='')}/leave"

    async def _post(self, url: str, payload: Optional[Dict[str, Any]], failure_prefix: str) -> Result[Any]:
        headers = outbound_headers()
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                logger.info(f"ProvisioningClient POST {url}")
                async with session.post(url, json=payload, auth=self.auth, headers=headers) as response:
                    status = response.status
                    text = await response.text()
                    if not 200 <= status < 300:
                        logger.error(f"Provisioning service responded {status} for {url}: {text}")
                        return upstream_error(f"{failure_prefix}: {status}", status, _decode_body(text))
                    logger.info(f"Provisioning service responded {status} for {url}")
                    return Ok(_decode_body(text))
        except asyncio.TimeoutError:
            logger.error(f"Timed out calling provisioning service {url}", exc_info=True)
            return transport_error(f"{failure_prefix}: provisioning service unavailable")
        except aiohttp.ClientError:
            logger.error(f"HTTP error calling provisioning service {url}", exc_info=True)
            return transport_error(f"{failure_prefix}: provisioning service unavailable")

    async def join(self, payload: Dict[str, Any]) -> Result[Any]:
        return await self._post(self.join_url(), payload, "Failed to start conversation")

    async def leave(self, agent_id: str) -> Result[Any]:
        return await self._post(self.leave_url(agent_id), None, "Failed to remove agent")
