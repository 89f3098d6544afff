# marketplace/routers/admin_reports.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from marketplace.core.auth import get_current_user, require_admin
from marketplace.core.config import settings
from marketplace.core.db import get_db
from marketplace.models.listing import Listing
from marketplace.models.profile import User
from marketplace.models.report import Report
from marketplace.schemas.common import Page, PageMeta
from marketplace.schemas.report import ReportIn, ReportOut
from marketplace.services import reports

router = APIRouter(prefix="/api", tags=["reports"])


def to_report_out(r: Report, listing: Optional[Listing] = None) -> ReportOut:
    return ReportOut(
        id=r.id,
        listing_id=r.listing_id,
        reporter_id=r.reporter_id,
        reason=r.reason,
        created_at=r.created_at,
        listing_title=listing.title if listing else None,
        listing_status=listing.status.value if listing else None,
        seller_id=listing.user_id if listing else None,
    )


@router.post("/listings/{listing_id}/report", response_model=ReportOut, status_code=status.HTTP_201_CREATED)
def report_listing(
    listing_id: int,
    body: ReportIn,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return to_report_out(reports.create_report(db, listing_id, body.reason, reporter_id=me.id))


# ---------- 관리자 ----------
@router.get("/admin/reports", response_model=Page[ReportOut])
def list_reports(
    page: int = Query(1, ge=1),
    size: int = Query(settings.REPORTS_PAGE_SIZE, ge=1, le=100),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    rows, total = reports.list_reports(db, page, size, search)
    return Page[ReportOut](
        items=[to_report_out(r, l) for r, l in rows],
        meta=PageMeta(page=page, size=size, total=total),
    )


@router.post("/admin/reports/{report_id}/hide-listing")
def hide_listing(report_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    listing = reports.hide_listing(db, reports.get_report(db, report_id))
    return {"listingId": listing.id, "status": listing.status.value}


@router.post("/admin/reports/{report_id}/ban-seller")
def ban_seller(report_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    profile = reports.ban_seller(db, reports.get_report(db, report_id))
    return {"userId": profile.id, "banned": profile.banned}


@router.delete("/admin/reports/{report_id}")
def delete_report(report_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    return {"reportId": reports.delete_report(db, reports.get_report(db, report_id))}
