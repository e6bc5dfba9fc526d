from fastapi import APIRouter, UploadFile, File, Form, HTTPException, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional, List
from datetime import datetime
import logging

from ..infrastructure.database import get_db
from ..infrastructure import models
from ..infrastructure.repositories import IncidentReportRepository
from ..infrastructure.storage import ObjectStorageService, StorageError, get_storage_service
from ..domain.exceptions import NotFoundError
from ..domain.models import (
    BookmarkResponse,
    CountResponse,
    IncidentReportResponse,
    Marker,
    RatingPercentage,
    ReportStatusUpdate,
    ReportSubmissionResponse,
    ReportTypeCountsResponse,
    RewardResponse,
    StateCategoryReportCount,
    StateLgaReportCount,
    StateReportCount,
    StateReportPercentage,
    SubReportResponse,
)
from ..domain.services.file_validation import FileValidationError, validate_image_upload
from .deps import get_current_user_id

router = APIRouter()
logger = logging.getLogger(__name__)

# Points credited to the reporter's reward balance per submitted report
REPORT_REWARD_POINTS = 10
REPORT_REWARD_TYPE = "incident_report"
RATINGS = ("good", "bad")


# ============================================================================
# SUBMISSION
# ============================================================================

@router.post("/", response_model=ReportSubmissionResponse, status_code=status.HTTP_201_CREATED)
async def submit_report(
    image: Optional[UploadFile] = File(None),
    state_name: str = Form(""),
    lga_name: str = Form(""),
    category: str = Form(""),
    description: str = Form(""),
    sub_report_type: Optional[str] = Form(None),
    latitude: Optional[float] = Form(None, ge=-90, le=90),
    longitude: Optional[float] = Form(None, ge=-180, le=180),
    address: Optional[str] = Form(None),
    rating: Optional[str] = Form(None),
    user_id: int = Depends(get_current_user_id),
    storage: ObjectStorageService = Depends(get_storage_service),
    db: Session = Depends(get_db)
):
    """
    Submit an incident report with a photo.

    Steps:
    1. Validate the image and the required fields
    2. Upload the image as `<user_id>_<original filename>`
    3. Save the report, its LGA, State, ReportType and SubReport, and the
       reporter's reward in one transaction
    """
    if image is None or not image.filename:
        raise HTTPException(status_code=400, detail="Missing or invalid file")

    content = await image.read()
    try:
        validate_image_upload(image.filename, image.content_type, len(content))
    except FileValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    state_name = state_name.strip()
    lga_name = lga_name.strip()
    category = category.strip()
    description = description.strip()
    if not state_name or not lga_name or not category or not description:
        raise HTTPException(status_code=400, detail="State, LGA, category, and description are required")

    if rating is not None and rating not in RATINGS:
        raise HTTPException(status_code=400, detail="Rating must be 'good' or 'bad'")

    filename = f"{user_id}_{image.filename}"
    try:
        image_url = await storage.upload_file(content, filename)
    except StorageError as e:
        logger.error(f"Failed to upload report image {filename}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to upload file to storage: {str(e)}")

    repo = IncidentReportRepository(db)
    report = models.IncidentReport(
        user_id=user_id,
        state_name=state_name,
        lga_name=lga_name,
        category=category,
        description=description,
        thumbnail_urls=image_url,
        latitude=latitude,
        longitude=longitude,
        address=address,
        incident_report_rating=rating,
        timeof_incidence=datetime.utcnow(),
    )

    try:
        previous_balance = repo.get_reward_by_user_id(user_id).balance or 0
    except NotFoundError:
        previous_balance = 0

    try:
        reward = repo.save_report_submission(
            report=report,
            lga=models.LGA(name=lga_name),
            state=models.State(name=state_name),
            report_type=models.ReportType(
                user_id=user_id,
                category=category,
                state_name=state_name,
                lga_name=lga_name,
                incident_report_rating=rating,
                date_of_incidence=report.timeof_incidence,
            ),
            sub_report=models.SubReport(
                state_name=state_name,
                report_type_category=category,
                sub_report_type=sub_report_type or category,
            ),
            reward=models.Reward(
                reward_type=REPORT_REWARD_TYPE,
                point=REPORT_REWARD_POINTS,
                balance=previous_balance + REPORT_REWARD_POINTS,
            ),
        )
    except Exception as e:
        logger.error(f"Database error submitting report: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to create report: {str(e)}")

    logger.info(f"Report created: {report.id} by user {user_id}, reward balance {reward.balance}")

    return ReportSubmissionResponse(
        message="Incident report submitted successfully",
        report=IncidentReportResponse.model_validate(report),
        reward=RewardResponse.model_validate(reward),
    )


# ============================================================================
# PAGINATED LISTINGS
# ============================================================================

@router.get("/", response_model=List[IncidentReportResponse])
def list_reports(page: int = Query(1, ge=1), db: Session = Depends(get_db)):
    """
    List incident reports, 20 per page, newest incident first.
    A page past the end returns an empty list.
    """
    return IncidentReportRepository(db).get_all_reports(page)


@router.get("/state/{state}", response_model=List[IncidentReportResponse])
def list_reports_by_state(state: str, page: int = Query(1, ge=1), db: Session = Depends(get_db)):
    return IncidentReportRepository(db).get_all_reports_by_state(state, page)


@router.get("/state/{state}/period", response_model=List[IncidentReportResponse])
def list_reports_by_state_and_period(
    state: str,
    start_time: datetime,
    end_time: datetime,
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db)
):
    if start_time > end_time:
        raise HTTPException(status_code=400, detail="start_time must not be after end_time")
    return IncidentReportRepository(db).get_all_reports_by_state_by_time(state, start_time, end_time, page)


@router.get("/lga/{lga}", response_model=List[IncidentReportResponse])
def list_reports_by_lga(lga: str, page: int = Query(1, ge=1), db: Session = Depends(get_db)):
    return IncidentReportRepository(db).get_all_reports_by_lga(lga, page)


@router.get("/category/{category}", response_model=List[IncidentReportResponse])
def list_reports_by_category(category: str, page: int = Query(1, ge=1), db: Session = Depends(get_db)):
    return IncidentReportRepository(db).get_all_reports_by_report_type(category, page)


# ============================================================================
# DASHBOARD AGGREGATIONS
# ============================================================================

@router.get("/stats/percentage-by-state", response_model=List[StateReportPercentage])
def get_report_percentage_by_state(db: Session = Depends(get_db)):
    return IncidentReportRepository(db).get_report_percentage_by_state()


@router.get("/stats/today-count", response_model=CountResponse)
def get_reports_posted_today_count(db: Session = Depends(get_db)):
    return CountResponse(count=IncidentReportRepository(db).get_reports_posted_today_count())


@router.get("/stats/type-counts", response_model=ReportTypeCountsResponse)
def get_report_type_counts(
    state: str,
    lga: str,
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    db: Session = Depends(get_db)
):
    """
    Category counts for one state and LGA, with reporting users,
    total reports and the LGA's report count per state.
    """
    try:
        return IncidentReportRepository(db).get_report_type_counts(state, lga, start_date, end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/stats/state-counts", response_model=List[StateReportCount])
def get_state_report_counts(db: Session = Depends(get_db)):
    return IncidentReportRepository(db).get_state_report_counts()


@router.get("/stats/state-category-counts", response_model=List[StateCategoryReportCount])
def get_variadic_state_report_counts(
    report_types: List[str] = Query([]),
    states: List[str] = Query([]),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db)
):
    """
    Report counts per state and category.
    Every filter is optional; repeat `report_types`/`states` to pass several values.
    """
    return IncidentReportRepository(db).get_variadic_state_report_counts(
        report_types, states, start_date, end_date
    )


@router.get("/stats/categories", response_model=List[str])
def get_all_categories(db: Session = Depends(get_db)):
    return IncidentReportRepository(db).get_all_categories()


@router.get("/stats/states", response_model=List[str])
def get_all_states(db: Session = Depends(get_db)):
    return IncidentReportRepository(db).get_all_states()


@router.get("/stats/rating", response_model=RatingPercentage)
def get_rating_percentages(category: str, state: str, db: Session = Depends(get_db)):
    return IncidentReportRepository(db).get_rating_percentages(category, state)


@router.get("/stats/state-lga-counts", response_model=List[StateLgaReportCount])
def get_report_counts_by_state_and_lga(db: Session = Depends(get_db)):
    return IncidentReportRepository(db).get_report_counts_by_state_and_lga()


@router.get("/stats/top-states", response_model=List[StateReportCount])
def list_top_states(db: Session = Depends(get_db)):
    return IncidentReportRepository(db).list_all_states_with_report_counts()


@router.get("/stats/total", response_model=CountResponse)
def get_total_report_count(db: Session = Depends(get_db)):
    return CountResponse(count=IncidentReportRepository(db).get_total_report_count())


@router.get("/markers", response_model=List[Marker])
def get_incident_markers(db: Session = Depends(get_db)):
    return IncidentReportRepository(db).get_incident_markers()


# ============================================================================
# SUB REPORTS AND REWARDS
# ============================================================================

@router.get("/sub-reports", response_model=List[SubReportResponse])
def get_sub_reports(report_type: str, lga: str, db: Session = Depends(get_db)):
    return IncidentReportRepository(db).get_reports_by_type_and_lga(report_type, lga)


@router.get("/sub-reports/names", response_model=List[str])
def get_sub_report_names(state_name: str, lga_id: str, category: str, db: Session = Depends(get_db)):
    return IncidentReportRepository(db).get_names_by_category(state_name, lga_id, category)


@router.delete("/sub-reports/{sub_report_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sub_report(
    sub_report_id: str,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    try:
        IncidentReportRepository(db).delete_by_id(sub_report_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Sub report not found")
    logger.info(f"Sub report {sub_report_id} deleted by user {user_id}")


@router.get("/rewards/me", response_model=RewardResponse)
def get_my_reward(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    try:
        return IncidentReportRepository(db).get_reward_by_user_id(user_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Reward not found")


# ============================================================================
# SINGLE REPORT
# ============================================================================

@router.get("/{report_id}", response_model=IncidentReportResponse)
def get_report(report_id: str, db: Session = Depends(get_db)):
    try:
        return IncidentReportRepository(db).get_report_by_id(report_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Report not found")


@router.get("/{report_id}/status")
def get_report_status(report_id: str, db: Session = Depends(get_db)):
    try:
        report_status = IncidentReportRepository(db).get_report_status_by_id(report_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Report not found")
    return {'report_id': report_id, 'report_status': report_status}


@router.put("/{report_id}/status", response_model=IncidentReportResponse)
def update_report_status(
    report_id: str,
    update: ReportStatusUpdate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    repo = IncidentReportRepository(db)
    try:
        report = repo.get_report_by_id(report_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Report not found")

    report.report_status = update.report_status
    try:
        report = repo.update_incident_report(report)
    except Exception as e:
        logger.error(f"Error updating report {report_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    logger.info(f"Report {report_id} status set to {update.report_status} by user {user_id}")
    return report


@router.get("/{report_id}/bookmark")
def is_report_bookmarked(
    report_id: str,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    bookmarked = IncidentReportRepository(db).check_report_in_bookmarked_report(user_id, report_id)
    return {'report_id': report_id, 'bookmarked': bookmarked}


@router.post("/{report_id}/bookmark", response_model=BookmarkResponse, status_code=status.HTTP_201_CREATED)
def bookmark_report(
    report_id: str,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Save a report to the user's bookmarks.
    Bookmarking the same report twice is rejected with 409.
    """
    repo = IncidentReportRepository(db)
    try:
        repo.get_report_by_id(report_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Report not found")

    if repo.check_report_in_bookmarked_report(user_id, report_id):
        raise HTTPException(status_code=409, detail="Report already bookmarked")

    try:
        repo.save_bookmark_report(models.BookmarkReport(user_id=user_id, report_id=report_id))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to bookmark report: {str(e)}")

    return BookmarkResponse(message="Report bookmarked successfully", user_id=user_id, report_id=report_id)
