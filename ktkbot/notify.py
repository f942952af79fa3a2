"""
Pushover notifications.

A Notification is a plain value: the two keys and the message are required,
everything else is optional and simply left out of the request when unset.
Keys are validated when they are created, so a malformed key is rejected
before anything is sent.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import requests

from ktkbot.errors import TransportError
from ktkbot.model import Event

logger = logging.getLogger(__name__)

PUSHOVER_API_URL = "https://api.pushover.net/1/messages.json"
REQUEST_TIMEOUT = 20

KEY_LENGTH = 30
_KEY_RE = re.compile(r"[a-z0-9]+", re.ASCII)

# Pushover reads "1" as enabled; a disabled flag is not sent at all.
FLAG_ENABLED = "1"

DIGEST_TITLE = "Nye tider lagt op!"
DIGEST_HEADER = "<u>Der er blevet lagt nye tider op</u>:"


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class PushoverKeyError(ValueError):
    pass


class PushoverKey:
    """
    A Pushover API token or user/group key.

    Exactly 30 ASCII letters and digits. Uppercase letters are lowercased
    before validation, so "ABC..." and "abc..." are the same key.
    """

    __slots__ = ("_value",)

    def __init__(self, raw: str) -> None:
        key = str(raw)
        # non-ASCII is rejected before lowercasing: "\u212a".lower() is "k"
        if not key.isascii():
            raise PushoverKeyError("Pushover key is not ASCII-alphanumeric.")
        key = key.lower()
        if len(key) != KEY_LENGTH:
            raise PushoverKeyError(f"Invalid pushover key length: {len(key)}. Expected {KEY_LENGTH}.")
        if not _KEY_RE.fullmatch(key):
            raise PushoverKeyError("Pushover key is not ASCII-alphanumeric.")
        self._value = key

    @property
    def value(self) -> str:
        return self._value

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        # keys are secrets, keep them out of logs
        return f"PushoverKey('{self._value[:4]}...')"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PushoverKey):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash(self._value)


# ---------------------------------------------------------------------------
# Notification value
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Notification:
    token: PushoverKey
    user: PushoverKey
    message: str
    title: Optional[str] = None
    html: bool = False
    monospace: bool = False

    def to_form(self) -> Dict[str, str]:
        """
        Form fields for the Pushover API. Unset optional fields are omitted.
        """
        form = {
            "token": self.token.value,
            "user": self.user.value,
            "message": self.message,
        }
        if self.title is not None:
            form["title"] = self.title
        if self.html:
            form["html"] = FLAG_ENABLED
        if self.monospace:
            form["monospace"] = FLAG_ENABLED
        return form

    def send(self, session: Optional[requests.Session] = None, timeout: float = REQUEST_TIMEOUT) -> requests.Response:
        """
        POST the notification. Raises TransportError on any network or HTTP error.
        """
        post = session.post if session is not None else requests.post
        try:
            resp = post(PUSHOVER_API_URL, data=self.to_form(), timeout=timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise TransportError(f"Failed to send push notification: {exc}") from exc
        return resp


# ---------------------------------------------------------------------------
# Digest of new events
# ---------------------------------------------------------------------------


def build_digest(events: Iterable[Event]) -> str:
    """
    One line per event, in the order given:

        <u>Der er blevet lagt nye tider op</u>:
        - <b>Tennis</b>: 14/06/2021 18:00
    """
    lines = [DIGEST_HEADER]
    for event in events:
        lines.append(f"- <b>{html.escape(event.title)}</b>: {event.timestamp:%d/%m/%Y %H:%M}")
    return "\n".join(lines)


class Notifier:
    """
    Sends the digest of newly found events to one Pushover user/group.
    """

    def __init__(self, api_key: PushoverKey, group_key: PushoverKey, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.group_key = group_key
        self.session = session

    def notify(self, events: list[Event]) -> None:
        notification = Notification(
            token=self.api_key,
            user=self.group_key,
            message=build_digest(events),
            title=DIGEST_TITLE,
            html=True,
        )
        logger.info("Sending push notification about %d new events...", len(events))
        notification.send(self.session)
        logger.info("Sent push notification.")
