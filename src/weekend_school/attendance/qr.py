"""Student QR payloads: build, parse, render to PNG and read back from photos.

Payload format (JSON text encoded in the QR image):
    {"uuid": "<student qr uuid>", "student_id": 12, "timestamp": 1735900000000}

The uuid is a per-student secret column; a payload only binds to a student when
both the id and the uuid match a non-deleted row.
"""
from __future__ import annotations

import io
import json
from dataclasses import dataclass
from datetime import datetime
from typing import IO

import qrcode
from PIL import Image, UnidentifiedImageError

from ..core.exceptions import InvalidStateError, ValidationError
from ..students.model import Student


@dataclass(frozen=True)
class QRPayload:
    uuid: str
    student_id: int
    timestamp: int | None = None

    def matches(self, student: Student) -> bool:
        return student.student_id == self.student_id and student.qr_uuid == self.uuid


def build_payload(student: Student, *, now: datetime) -> str:
    return json.dumps(
        {
            "uuid": student.qr_uuid,
            "student_id": student.student_id,
            "timestamp": int(now.timestamp() * 1000),
        },
        separators=(",", ":"),
    )


def parse_payload(raw: str) -> QRPayload:
    if not raw or not str(raw).strip():
        raise ValidationError("QR data is required")

    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        raise InvalidStateError("Invalid QR code format")
    if not isinstance(data, dict):
        raise InvalidStateError("Invalid QR code format")

    qr_uuid = data.get("uuid")
    student_id = data.get("student_id")
    if not qr_uuid or student_id in (None, ""):
        raise InvalidStateError("QR code missing required fields")

    try:
        student_id = int(student_id)
    except (TypeError, ValueError):
        raise InvalidStateError("Invalid QR code format")

    timestamp = data.get("timestamp")
    return QRPayload(
        uuid=str(qr_uuid),
        student_id=student_id,
        timestamp=int(timestamp) if isinstance(timestamp, (int, float)) else None,
    )


def render_png(data: str, *, box_size: int = 10, border: int = 2) -> bytes:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def decode_image(stream: IO[bytes]) -> str:
    """Return the text of the first QR code found in an uploaded photo."""

    try:
        img = Image.open(stream).convert("RGB")
    except (UnidentifiedImageError, OSError):
        raise ValidationError("Uploaded file is not an image")

    from pyzbar.pyzbar import decode as pyzbar_decode

    decoded = pyzbar_decode(img)
    if not decoded:
        raise InvalidStateError("No QR code found in image")
    return decoded[0].data.decode("utf-8").strip()
