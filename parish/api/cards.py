import re
import unicodedata
from typing import List, Optional
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from parish.core.dependencies import require_manage_adherents, require_view_adherents
from parish.core.errors import ValidationError
from parish.db.base import get_db
from parish.models.user import User
from parish.schemas.member import AdherentResponse
from parish.services import qr
from parish.services.cards import render_card_batch, render_card_pdf
from parish.services.member import MemberRepository

router = APIRouter(prefix="/api/cards", tags=["cards"])


class CardBatchRequest(BaseModel):
    member_ids: List[UUID]
    year: Optional[int] = None


class ScanRequest(BaseModel):
    payload: str


def attachment_header(filename: str) -> str:
    """Attachment header with an ASCII fallback name and the exact name as RFC 5987 ``filename*``."""
    fallback = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    fallback = re.sub(r"[^A-Za-z0-9._-]+", "_", fallback).strip("_") or "carte.pdf"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


@router.get("/{adherent_id}")
def member_card(
    adherent_id: UUID,
    year: Optional[int] = None,
    current_user: User = Depends(require_manage_adherents),
    db: Session = Depends(get_db)
):
    member = MemberRepository(db).get_or_404(adherent_id)
    pdf = render_card_pdf(member, year)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": attachment_header(f"carte_{member.surname}_{member.given_name}.pdf")},
    )


@router.get("/{adherent_id}/qr")
def member_qr(
    adherent_id: UUID,
    current_user: User = Depends(require_view_adherents),
    db: Session = Depends(get_db)
):
    member = MemberRepository(db).get_or_404(adherent_id)
    return Response(content=qr.render_qr_png(qr.build_payload(member)), media_type="image/png")


@router.post("/batch")
def member_cards_batch(
    payload: CardBatchRequest,
    current_user: User = Depends(require_manage_adherents),
    db: Session = Depends(get_db)
):
    """A4 sheets of cards, in the order of ``member_ids``.

    Members whose QR code failed are listed in ``X-Cards-Failed``.
    """
    if not payload.member_ids:
        raise ValidationError("No adherents selected")
    repo = MemberRepository(db)
    members = [repo.get_or_404(member_id) for member_id in payload.member_ids]
    result = render_card_batch(members, payload.year)
    return Response(
        content=result.pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": 'attachment; filename="cartes_membres.pdf"',
            "X-Cards-Rendered": str(result.rendered),
            "X-Cards-Pages": str(result.pages),
            "X-Cards-Failed": ",".join(str(f.member_id) for f in result.failures),
        },
    )


@router.post("/scan", response_model=AdherentResponse)
def scan_card(
    payload: ScanRequest,
    current_user: User = Depends(require_view_adherents),
    db: Session = Depends(get_db)
):
    """Resolve a scanned QR payload to the live adherent record."""
    return qr.resolve_member(MemberRepository(db), payload.payload)
