# marketplace/services/reports.py
import logging
from typing import List, Optional, Tuple

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from marketplace.core.errors import NotFound, ValidationFailed
from marketplace.models.listing import Listing, ListingStatus
from marketplace.models.profile import Profile
from marketplace.models.report import Report

logger = logging.getLogger(__name__)


def create_report(db: Session, listing_id: int, reason: str, reporter_id: Optional[int] = None) -> Report:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationFailed("reason_required")
    if db.get(Listing, listing_id) is None:
        raise NotFound("listing_not_found")

    report = Report(listing_id=listing_id, reason=reason, reporter_id=reporter_id)
    db.add(report)
    db.commit()
    db.refresh(report)
    logger.info("listing %s reported (report=%s)", listing_id, report.id)
    return report


def list_reports(
    db: Session, page: int, size: int, search: Optional[str] = None
) -> Tuple[List[Tuple[Report, Optional[Listing]]], int]:
    query = select(Report, Listing).outerjoin(Listing, Listing.id == Report.listing_id)
    if search:
        query = query.where(Report.reason.ilike(f"%{search}%"))

    total = db.scalar(select(func.count()).select_from(query.subquery()))
    # page 는 1부터
    rows = db.execute(
        query.order_by(desc(Report.created_at), desc(Report.id)).offset((page - 1) * size).limit(size)
    ).all()
    return [(r, l) for r, l in rows], total


def get_report(db: Session, report_id: int) -> Report:
    report = db.get(Report, report_id)
    if report is None:
        raise NotFound("report_not_found")
    return report


def hide_listing(db: Session, report: Report) -> Listing:
    listing = db.get(Listing, report.listing_id)
    if listing is None:
        raise NotFound("listing_not_found")
    listing.status = ListingStatus.HIDDEN
    db.commit()
    db.refresh(listing)
    logger.warning("listing %s hidden after report %s", listing.id, report.id)
    return listing


def ban_seller(db: Session, report: Report) -> Profile:
    listing = db.get(Listing, report.listing_id)
    if listing is None:
        raise NotFound("listing_not_found")
    profile = db.get(Profile, listing.user_id)
    if profile is None:
        raise NotFound("profile_not_found")
    profile.banned = True
    db.commit()
    db.refresh(profile)
    logger.warning("user %s banned after report %s", profile.id, report.id)
    return profile


def delete_report(db: Session, report: Report) -> int:
    rid = report.id
    db.delete(report)
    db.commit()
    return rid
