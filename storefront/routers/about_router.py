import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import crud
from ..auth import get_current_user
from ..database import get_db
from ..errors import ValidationError
from ..messaging import publish_feedback
from ..schemas import Envelope, ReportCreate, ReportResponse, SessionUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/about", tags=["about"])


@router.get("", response_model=Envelope)
def about():
    return {"success": True, "message": "Tell us what you think! Logged-in users can send a report."}


@router.post("/Report", response_model=ReportResponse)
@router.post("/report", response_model=ReportResponse, include_in_schema=False)
def submit_report(
    body: ReportCreate,
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    message = body.report.strip()
    if not message:
        raise ValidationError("Please enter a report message.")
    report = crud.create_report(db, user_id=current_user.id, message=message)

    # best-effort; the report is already stored
    try:
        publish_feedback(report, current_user)
    except Exception as e:
        logger.warning(f"Could not publish feedback.submitted for report {report.id}: {e}")

    return {"success": True, "message": "Thank you! Your report has been received.", "report": report}
