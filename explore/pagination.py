"""Opaque pagination tokens for the liker listings.

A token is the URL-safe base64 encoding of a compact JSON object::

    {"actor_id": 42, "updated_unix": 1700000000123}

``updated_unix`` is the ``updated_at`` of the last row on the previous page in
milliseconds since the epoch and is omitted when zero. The empty string
decodes to the start cursor, and a cursor missing either field also reads
the first page. Decisions are timestamped at millisecond precision (see
:func:`utcnow_ms`) so a cursor always lands exactly on a row boundary.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from explore.errors import InvalidCursorError

__all__ = [
    "Cursor",
    "MAX_UINT64",
    "START",
    "decode_cursor",
    "encode_cursor",
    "from_unix_millis",
    "to_unix_millis",
    "utcnow_ms",
]

MAX_UINT64 = 2**64 - 1
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MAX_UNIX_MILLIS = (datetime.max.replace(tzinfo=UTC) - _EPOCH) // timedelta(milliseconds=1)


def utcnow_ms() -> datetime:
    """Return the current UTC time truncated to whole milliseconds."""

    now = datetime.now(UTC)
    return now.replace(microsecond=now.microsecond - now.microsecond % 1000)


def to_unix_millis(value: datetime) -> int:
    """Convert ``value`` to integer milliseconds since the epoch.

    SQLite hands timestamps back without tzinfo; they were written as UTC so
    naive values are interpreted as UTC.
    """

    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return (value - _EPOCH) // timedelta(milliseconds=1)


def from_unix_millis(millis: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=millis)


@dataclass(frozen=True, slots=True)
class Cursor:
    """Resume position in the ``(updated_at desc, actor_id desc)`` ordering."""

    actor_id: int = 0
    updated_unix: int = 0

    @property
    def has_position(self) -> bool:
        """Whether the cursor narrows the listing.

        Both fields must be set; a token missing either one reads the first
        page.
        """

        return self.actor_id > 0 and self.updated_unix > 0

    @property
    def updated_at(self) -> datetime:
        return from_unix_millis(self.updated_unix)

    @classmethod
    def after(cls, actor_id: int, updated_at: datetime) -> Cursor:
        """Build the cursor that resumes right after the given row."""

        return cls(actor_id=actor_id, updated_unix=to_unix_millis(updated_at))


START = Cursor()


def encode_cursor(cursor: Cursor) -> str:
    payload: dict[str, int] = {"actor_id": cursor.actor_id}
    if cursor.updated_unix:
        payload["updated_unix"] = cursor.updated_unix
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_cursor(token: str | None) -> Cursor:
    """Parse ``token`` back into a :class:`Cursor`.

    ``None`` and ``""`` are the first page. Anything that is not valid
    URL-safe base64 of a JSON object with integer fields raises
    :class:`InvalidCursorError`.
    """

    if not token:
        return START

    try:
        raw = base64.b64decode(token.encode("ascii"), altchars=b"-_", validate=True)
        payload = json.loads(raw)
    except (UnicodeEncodeError, binascii.Error, ValueError) as exc:
        raise InvalidCursorError("invalid pagination token") from exc

    if not isinstance(payload, dict):
        raise InvalidCursorError("invalid pagination token")

    actor_id = payload.get("actor_id", 0)
    updated_unix = payload.get("updated_unix", 0)
    for value in (actor_id, updated_unix):
        # bool is an int subclass; true/false are not valid positions
        if not isinstance(value, int) or isinstance(value, bool):
            raise InvalidCursorError("invalid pagination token")

    if not 0 <= actor_id <= MAX_UINT64 or not 0 <= updated_unix <= _MAX_UNIX_MILLIS:
        raise InvalidCursorError("invalid pagination token")

    return Cursor(actor_id=actor_id, updated_unix=updated_unix)
