"""
Open detection for tracking-pixel requests.

Mail scanners, antivirus crawlers and link previewers fetch the tracking
pixel long before (or instead of) a human reading the email. ``classify``
decides, for one pixel request, whether it should be counted as a genuine
open. It owns no state: every decision re-reads the email record and the
recent open events from the database.

Rules run in order and the first match wins:

1. the user agent names an automated agent (case-insensitive denylist)
2. the client address is loopback
3. the user agent is missing or too short to be a real mail client
4. the request arrived too soon after the email was sent
5. the same recipient already opened the email within the dedup window
"""

from dataclasses import dataclass
from datetime import timedelta
import logging

from django.conf import settings
from django.db import models
from django.utils import timezone

from .models import EmailRecord, OpenEvent

logger = logging.getLogger(__name__)


class Reason(models.TextChoices):
    ACCEPTED = "accepted", "Accepted"
    BOT_USER_AGENT = "bot_user_agent", "Automated user agent"
    LOOPBACK_ADDRESS = "loopback_address", "Loopback address"
    SHORT_USER_AGENT = "short_user_agent", "Missing or short user agent"
    TOO_SOON_AFTER_SEND = "too_soon_after_send", "Too soon after send"
    DUPLICATE = "duplicate", "Duplicate open"


@dataclass(frozen=True)
class Decision:
    accept: bool
    reason: str

    @classmethod
    def accepted(cls):
        return cls(accept=True, reason=Reason.ACCEPTED)

    @classmethod
    def rejected(cls, reason):
        return cls(accept=False, reason=reason)


@dataclass(frozen=True)
class TrackingPolicy:
    """Tunable thresholds of the open detector (``settings.EMAIL_TRACKING``)."""

    bot_user_agent_markers: tuple
    loopback_addresses: frozenset
    min_user_agent_length: int
    send_time_threshold: timedelta
    dedup_window: timedelta

    @classmethod
    def from_settings(cls):
        config = settings.EMAIL_TRACKING
        return cls(
            bot_user_agent_markers=tuple(
                marker.lower() for marker in config["BOT_USER_AGENT_MARKERS"]
            ),
            loopback_addresses=frozenset(config["LOOPBACK_ADDRESSES"]),
            min_user_agent_length=config["MIN_USER_AGENT_LENGTH"],
            send_time_threshold=timedelta(seconds=config["SEND_TIME_THRESHOLD_SECONDS"]),
            dedup_window=timedelta(seconds=config["DEDUP_WINDOW_SECONDS"]),
        )


@dataclass(frozen=True)
class OpenRequest:
    """Metadata of one pixel request, as captured from HTTP."""

    email_id: str
    recipient_email: str = ""
    user_agent: str = ""
    ip_address: str = ""


def matches_bot_user_agent(user_agent, policy):
    user_agent = (user_agent or "").lower()
    return any(marker in user_agent for marker in policy.bot_user_agent_markers)


def is_loopback_address(ip_address, policy):
    return (ip_address or "") in policy.loopback_addresses


def is_short_user_agent(user_agent, policy):
    return len(user_agent or "") < policy.min_user_agent_length


def is_too_soon_after_send(sent_at, now, policy):
    """
    True when ``now`` falls inside the send-time threshold.

    An email nobody registered has no ``sent_at``; the rule cannot fire.
    """
    if sent_at is None:
        return False
    return now - sent_at < policy.send_time_threshold


def get_sent_at(email_id):
    return (
        EmailRecord.objects.filter(pk=email_id)
        .values_list("sent_at", flat=True)
        .first()
    )


def has_recent_open(email_id, recipient_email, now, policy):
    return OpenEvent.objects.filter(
        email_id=email_id,
        recipient_email=recipient_email,
        timestamp__gt=now - policy.dedup_window,
    ).exists()


def classify(open_request, now=None, policy=None):
    """
    Decide whether a pixel request is a genuine open.

    Args:
        open_request: OpenRequest with the captured request metadata
        now: Arrival time (defaults to the current time)
        policy: TrackingPolicy (defaults to the one in settings)

    Returns:
        Decision: ``accept`` plus the ``Reason`` of the first rule that fired
    """
    now = now or timezone.now()
    policy = policy or TrackingPolicy.from_settings()

    if matches_bot_user_agent(open_request.user_agent, policy):
        return Decision.rejected(Reason.BOT_USER_AGENT)

    if is_loopback_address(open_request.ip_address, policy):
        return Decision.rejected(Reason.LOOPBACK_ADDRESS)

    if is_short_user_agent(open_request.user_agent, policy):
        return Decision.rejected(Reason.SHORT_USER_AGENT)

    sent_at = get_sent_at(open_request.email_id)
    if is_too_soon_after_send(sent_at, now, policy):
        return Decision.rejected(Reason.TOO_SOON_AFTER_SEND)

    if has_recent_open(
        open_request.email_id, open_request.recipient_email, now, policy
    ):
        return Decision.rejected(Reason.DUPLICATE)

    return Decision.accepted()
