"""
Slack Web API transport.

Implements the three messaging calls the dispatch chain needs:
open a DM, post a message, resolve an email to a user id.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from src.common.config import Config
from src.common.error_handling import TransportError

logger = logging.getLogger(__name__)

SLACK_API_URL = "https://slack.com/api"


class SlackTransport:
    """Async Slack client limited to the calls used for introductions."""

    def __init__(
        self,
        bot_token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.bot_token = bot_token if bot_token is not None else Config.SLACK_BOT_TOKEN
        self._client = http_client or httpx.AsyncClient(
            base_url=SLACK_API_URL,
            timeout=Config.HTTP_TIMEOUT_SECONDS,
            headers={"Authorization": f"Bearer {self.bot_token}"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, payload: Dict[str, Any], as_form: bool = False) -> Dict[str, Any]:
        """Invoke a Web API method; ``ok: false`` becomes TransportError."""
        try:
            if as_form:
                response = await self._client.post(f"/{method}", data=payload)
            else:
                response = await self._client.post(f"/{method}", json=payload)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TransportError(f"Slack {method} failed: {e}") from e

        if not data.get("ok"):
            raise TransportError(f"Slack {method} failed: {data.get('error', 'unknown_error')}")
        return data

    async def open_conversation(self, identity: str) -> str:
        """Open (or reuse) a DM with ``identity`` and return the channel id."""
        data = await self._call("conversations.open", {"users": identity})
        channel_id = (data.get("channel") or {}).get("id")
        if not channel_id:
            raise TransportError(f"Could not open conversation with {identity}")
        return channel_id

    async def post_message(
        self,
        channel: str,
        text: str,
        blocks: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        payload: Dict[str, Any] = {"channel": channel, "text": text}
        if blocks:
            payload["blocks"] = blocks
        await self._call("chat.postMessage", payload)

    async def lookup_identity_by_contact(self, email: str) -> Optional[str]:
        """Resolve an email to a Slack user id; None when no such user."""
        try:
            data = await self._call("users.lookupByEmail", {"email": email}, as_form=True)
        except TransportError as e:
            if "users_not_found" in str(e):
                return None
            raise
        return (data.get("user") or {}).get("id")
