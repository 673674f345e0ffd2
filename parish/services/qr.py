"""QR payloads printed on member cards.

The payload is canonical JSON over a fixed key set so that the same member
always yields the same bytes. Scanning only trusts the ``id`` field; the
name fields are there for humans reading the raw payload.
"""
import json
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Optional
from uuid import UUID

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from parish.core.errors import NotFoundError, RenderingError, ValidationError
from parish.models.member import Adherent

logger = logging.getLogger(__name__)

PAYLOAD_KEYS = ("id", "nom", "prenom", "fonction", "quartier")


@dataclass(frozen=True)
class QRPayload:
    id: str
    nom: Optional[str] = None
    prenom: Optional[str] = None
    fonction: Optional[str] = None
    quartier: Optional[str] = None
    legacy: bool = False


def build_payload(member: Adherent) -> str:
    data = {
        "id": str(member.id),
        "nom": member.surname,
        "prenom": member.given_name,
        "fonction": member.church_function or None,
        "quartier": member.neighborhood or None,
    }
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def decode_payload(text: str) -> QRPayload:
    """Parse a scanned payload.

    Cards printed before payloads were JSON carry the bare member id, so any
    text that does not parse as a JSON object is taken as the id itself.
    """
    text = (text or "").strip()
    if not text:
        raise ValidationError("Empty QR payload")
    try:
        data = json.loads(text)
    except ValueError:
        return QRPayload(id=text, legacy=True)
    if not isinstance(data, dict):
        return QRPayload(id=text, legacy=True)
    member_id = data.get("id")
    if not member_id:
        raise ValidationError("QR payload has no member id")
    return QRPayload(**{key: data.get(key) for key in PAYLOAD_KEYS if key != "id"}, id=str(member_id))


def resolve_member(repo, text: str) -> Adherent:
    """Decode a payload and load the member it designates. ``repo`` is a MemberRepository."""
    payload = decode_payload(text)
    try:
        member_id = UUID(payload.id)
    except ValueError:
        raise NotFoundError("Adherent not found")
    return repo.get_or_404(member_id)


def render_qr_png(payload: str, box_size: int = 10) -> bytes:
    try:
        qr = qrcode.QRCode(
            version=None,
            error_correction=ERROR_CORRECT_M,
            box_size=box_size,
            border=1,
        )
        qr.add_data(payload)
        qr.make(fit=True)
        image = qr.make_image(fill_color="black", back_color="white")
        buffer = BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()
    except Exception as e:
        logger.error(f"Error generating QR code: {e}")
        raise RenderingError("Could not generate QR code") from e
