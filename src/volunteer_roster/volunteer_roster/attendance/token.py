"""Attendance token: the payload a volunteer's device shows at event time.

Wire form is a JSON object. Devices in the field emit the short keys
vId/eId/dId; the long keys volunteerId/eventId/departmentId are accepted too.
With a serializer configured the JSON travels inside an itsdangerous signed,
timestamped envelope and signature plus age are checked before anything else.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..core.constants import TOKEN_SALT
from ..core.exceptions import TokenFormatError

_KEYS = {
    "volunteer_id": ("vId", "volunteerId", "volunteer_id"),
    "event_id": ("eId", "eventId", "event_id"),
    "department_id": ("dId", "departmentId", "department_id"),
}


@dataclass(frozen=True)
class AttendanceToken:
    volunteer_id: int
    event_id: int
    department_id: int

    def to_payload(self) -> dict:
        return {"vId": self.volunteer_id, "eId": self.event_id, "dId": self.department_id}


def make_serializer(secret_key: Optional[str]) -> Optional[URLSafeTimedSerializer]:
    if not secret_key:
        return None
    return URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)


def _pick_id(data: dict, field: str) -> int:
    for key in _KEYS[field]:
        value = data.get(key)
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            break
        try:
            n = int(value)
        except (TypeError, ValueError):
            break
        if n > 0:
            return n
        break
    raise TokenFormatError("QR Code incompleto.", field=field)


def token_from_dict(data: Any) -> AttendanceToken:
    if not isinstance(data, dict):
        raise TokenFormatError("QR Code inválido.")
    return AttendanceToken(
        volunteer_id=_pick_id(data, "volunteer_id"),
        event_id=_pick_id(data, "event_id"),
        department_id=_pick_id(data, "department_id"),
    )


def parse_token(
    raw: Any,
    *,
    serializer: Optional[URLSafeTimedSerializer] = None,
    max_age: Optional[int] = None,
    require_signature: bool = False,
) -> AttendanceToken:
    """Turn a scanned payload into an AttendanceToken or raise TokenFormatError."""

    if isinstance(raw, dict):
        if require_signature:
            raise TokenFormatError("QR Code sem assinatura.")
        return token_from_dict(raw)

    if not isinstance(raw, str) or not raw.strip():
        raise TokenFormatError("QR Code vazio.")
    text = raw.strip()

    if text.startswith("{"):
        if require_signature:
            raise TokenFormatError("QR Code sem assinatura.")
        try:
            data = json.loads(text)
        except ValueError:
            raise TokenFormatError("QR Code inválido.")
        return token_from_dict(data)

    if serializer is None:
        raise TokenFormatError("QR Code inválido.")
    try:
        data = serializer.loads(text, max_age=max_age)
    except SignatureExpired:
        raise TokenFormatError("QR Code expirado. Gere um novo código.")
    except BadSignature:
        raise TokenFormatError("QR Code inválido.")
    return token_from_dict(data)


def issue_token(
    token: AttendanceToken, *, serializer: Optional[URLSafeTimedSerializer] = None
) -> str:
    """Payload text a volunteer's device encodes in its QR code."""

    if serializer is None:
        return json.dumps(token.to_payload(), separators=(",", ":"))
    return serializer.dumps(token.to_payload())
