"""
Message Dispatch Fallback Chain

Delivers one introduction message per ranked candidate, trying in order:

1. The assigned identity for the candidate's rank position (direct message)
2. A lookup of the candidate's contact email (direct message)
3. A broadcast to the default shared channel

Every attempt is recorded on the DeliveryReport. Each candidate's chain runs
inside its own error boundary so one failure never aborts another.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Sequence
from urllib.parse import quote

from src.clients.slack_transport import SlackTransport
from src.common.config import Config
from src.common.types import (
    DeliveryAttempt,
    DeliveryChannel,
    DeliveryReport,
    DeliveryStatus,
    Profile,
)

logger = logging.getLogger(__name__)

GIFT_URL = "https://www.uncommongoods.com/fun/by-recipient/gifts-for-coworkers"


class OutboundMessage(NamedTuple):
    """One ranked candidate and the introduction addressed to them."""
    candidate: Profile
    message: str
    commonalities: Sequence[str] = ()


@dataclass
class DeliveryTargets:
    """
    Externally supplied delivery configuration.

    ``assigned_identities`` is position-indexed: the candidate ranked at
    position ``i`` is first tried at ``assigned_identities[i]``.
    """
    assigned_identities: List[str] = field(default_factory=list)
    default_channel: Optional[str] = None
    team_id: Optional[str] = None

    @classmethod
    def from_config(cls) -> "DeliveryTargets":
        """Create delivery targets from Config (DISPATCH_* and SLACK_TEAM_ID)."""
        return cls(
            assigned_identities=list(Config.DISPATCH_ASSIGNED_IDENTITIES),
            default_channel=Config.DISPATCH_DEFAULT_CHANNEL,
            team_id=Config.SLACK_TEAM_ID or None,
        )

    def identity_for(self, position: int) -> Optional[str]:
        if 0 <= position < len(self.assigned_identities):
            return self.assigned_identities[position]
        return None

    def with_default_channel(self, channel: Optional[str]) -> "DeliveryTargets":
        """Copy with a per-request default channel override."""
        if not channel:
            return self
        return DeliveryTargets(
            assigned_identities=list(self.assigned_identities),
            default_channel=channel,
            team_id=self.team_id,
        )


def build_intro_blocks(
    message: str,
    identity: str,
    team_id: Optional[str] = None,
    commonalities: Sequence[str] = (),
    employee_name: str = "",
) -> List[Dict[str, Any]]:
    """Message section plus "Say Hi" / "Pick out a gift" buttons."""
    interests = ",".join(commonalities[:3])
    gift_url = f"{GIFT_URL}?employee={quote(employee_name)}&interests={quote(interests)}"
    return [
        {"type": "section", "text": {"type": "mrkdwn", "text": message}},
        {
            "type": "actions",
            "elements": [
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "Say Hi", "emoji": True},
                    "url": f"slack://user?team={team_id or ''}&id={identity}",
                    "action_id": "say_hi",
                },
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "Pick out a gift", "emoji": True},
                    "url": gift_url,
                    "action_id": "pick_gift",
                    "style": "primary",
                },
            ],
        },
    ]


class DispatchChain:
    """Runs the three-step delivery chain against a messaging transport."""

    def __init__(self, transport: SlackTransport, targets: Optional[DeliveryTargets] = None):
        self.transport = transport
        self.targets = targets or DeliveryTargets.from_config()

    async def _direct_message(
        self,
        identity: str,
        message: str,
        commonalities: Sequence[str],
        employee_name: str,
        team_id: Optional[str] = None,
    ) -> None:
        channel_id = await self.transport.open_conversation(identity)
        blocks = build_intro_blocks(
            message,
            identity,
            team_id=team_id or self.targets.team_id,
            commonalities=commonalities,
            employee_name=employee_name,
        )
        await self.transport.post_message(channel_id, message, blocks=blocks)

    async def deliver(
        self,
        candidate: Profile,
        message: str,
        position: int,
        commonalities: Sequence[str] = (),
        employee_name: str = "",
        team_id: Optional[str] = None,
    ) -> DeliveryReport:
        attempts: List[DeliveryAttempt] = []

        # 1. Assigned identity for this rank position
        identity = self.targets.identity_for(position)
        if identity:
            try:
                await self._direct_message(identity, message, commonalities, employee_name, team_id)
                attempts.append(DeliveryAttempt(
                    channel=DeliveryChannel.ASSIGNED_IDENTITY, target=identity, success=True
                ))
                logger.info(f"Sent DM to {identity} for {candidate.name}")
                return DeliveryReport(
                    person=candidate.name,
                    status=DeliveryStatus.SENT,
                    channel=f"DM to {identity}",
                    message=message,
                    attempts=attempts,
                )
            except Exception as e:
                logger.warning(f"Error sending DM to {identity}: {e}")
                attempts.append(DeliveryAttempt(
                    channel=DeliveryChannel.ASSIGNED_IDENTITY, target=identity, success=False, error=str(e)
                ))

        # 2. Lookup by contact email
        if candidate.email:
            try:
                found = await self.transport.lookup_identity_by_contact(candidate.email)
                if not found:
                    raise LookupError(f"No messaging user for {candidate.email}")
                await self._direct_message(found, message, commonalities, employee_name, team_id)
                attempts.append(DeliveryAttempt(
                    channel=DeliveryChannel.CONTACT_LOOKUP, target=candidate.email, success=True
                ))
                logger.info(f"Sent DM to {candidate.name} ({candidate.email})")
                return DeliveryReport(
                    person=candidate.name,
                    status=DeliveryStatus.SENT,
                    channel=f"DM to {candidate.email}",
                    message=message,
                    attempts=attempts,
                )
            except Exception as e:
                logger.warning(f"Error finding user by email {candidate.email}: {e}")
                attempts.append(DeliveryAttempt(
                    channel=DeliveryChannel.CONTACT_LOOKUP, target=candidate.email, success=False, error=str(e)
                ))

        # 3. Default channel broadcast
        channel = self.targets.default_channel
        if not channel:
            return self._failed(candidate, attempts, "No assigned identity, contact or default channel available")

        header = f"Introduction message for {candidate.name} ({candidate.role}):"
        try:
            await self.transport.post_message(channel, f"{header}\n\n{message}")
        except Exception as e:
            logger.error(f"Error sending to default channel {channel}: {e}")
            attempts.append(DeliveryAttempt(
                channel=DeliveryChannel.DEFAULT_CHANNEL, target=channel, success=False, error=str(e)
            ))
            return self._failed(candidate, attempts, "Could not send message via any method")

        attempts.append(DeliveryAttempt(
            channel=DeliveryChannel.DEFAULT_CHANNEL, target=channel, success=True
        ))
        return DeliveryReport(
            person=candidate.name,
            status=DeliveryStatus.SENT_TO_DEFAULT,
            channel=channel,
            message=message,
            attempts=attempts,
        )

    def _failed(self, candidate: Profile, attempts: List[DeliveryAttempt], error: str) -> DeliveryReport:
        attempts.append(DeliveryAttempt(channel=DeliveryChannel.NONE, success=False, error=error))
        return DeliveryReport(
            person=candidate.name,
            status=DeliveryStatus.FAILED,
            channel=DeliveryChannel.NONE.value,
            attempts=attempts,
            error=error,
        )

    async def deliver_all(
        self,
        items: Sequence[OutboundMessage],
        employee_name: str = "",
        team_id: Optional[str] = None,
    ) -> List[DeliveryReport]:
        """
        Deliver messages in rank order; position ``i`` is the i-th item.

        ``team_id`` is the introduced employee's workspace and wins over the
        configured one in "Say Hi" links.
        """
        reports: List[DeliveryReport] = []
        for position, item in enumerate(items):
            try:
                reports.append(await self.deliver(
                    item.candidate,
                    item.message,
                    position,
                    commonalities=item.commonalities,
                    employee_name=employee_name,
                    team_id=team_id,
                ))
            except Exception as e:
                logger.error(f"Error processing message for {item.candidate.name}: {e}")
                reports.append(self._failed(item.candidate, [], str(e)))
        return reports
