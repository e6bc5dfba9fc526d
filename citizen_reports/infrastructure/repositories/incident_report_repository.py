"""
Data access for incident reports and their dashboard aggregations.

Single-record reads and writes use the ORM; the aggregate report queries
are raw SQL run through ``sqlalchemy.text``.
"""
from sqlalchemy import DateTime, bindparam, func, text
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
from datetime import datetime
import logging

from .. import models
from ...domain.exceptions import NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
TOP_STATES_LIMIT = 6
DATE_FORMAT = "%Y-%m-%d"


def page_offset(page: int, page_size: int = DEFAULT_PAGE_SIZE) -> int:
    """Row offset of a 1-based page number."""
    return (page - 1) * page_size


def parse_date(value: str, label: str) -> datetime:
    try:
        return datetime.strptime(value, DATE_FORMAT)
    except ValueError as e:
        raise ValueError(f"failed to parse {label} date: {e}")


class IncidentReportRepository:
    """
    Repository over incident_reports, report_types, sub_reports, lgas,
    states, rewards and bookmark_reports.
    """

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # Single record CRUD
    # =========================================================================

    def save_incident_report(self, report: models.IncidentReport) -> models.IncidentReport:
        try:
            self.db.add(report)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise RuntimeError(f"failed to save report: {e}") from e
        self.db.refresh(report)
        return report

    def get_report_by_id(self, report_id: str) -> models.IncidentReport:
        report = self.db.query(models.IncidentReport).filter(
            models.IncidentReport.id == report_id
        ).first()
        if not report:
            raise NotFoundError("report", report_id)
        return report

    def get_report_status_by_id(self, report_id: str) -> str:
        row = self.db.query(models.IncidentReport.report_status).filter(
            models.IncidentReport.id == report_id
        ).first()
        if row is None:
            raise NotFoundError("report", report_id)
        return row[0]

    def update_incident_report(self, report: models.IncidentReport) -> models.IncidentReport:
        try:
            report = self.db.merge(report)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise RuntimeError(f"failed to update report: {e}") from e
        self.db.refresh(report)
        return report

    def find_user_by_id(self, user_id: int) -> models.User:
        user = self.db.query(models.User).filter(models.User.id == user_id).first()
        if not user:
            raise NotFoundError("user", user_id)
        return user

    # =========================================================================
    # Paginated listings (newest incident first)
    # =========================================================================

    def _paginate(self, query, page: int) -> List[models.IncidentReport]:
        return (
            query.order_by(models.IncidentReport.timeof_incidence.desc())
            .limit(DEFAULT_PAGE_SIZE)
            .offset(page_offset(page))
            .all()
        )

    def get_all_reports(self, page: int) -> List[models.IncidentReport]:
        return self._paginate(self.db.query(models.IncidentReport), page)

    def get_all_reports_by_state(self, state: str, page: int) -> List[models.IncidentReport]:
        query = self.db.query(models.IncidentReport).filter(
            models.IncidentReport.state_name == state
        )
        return self._paginate(query, page)

    def get_all_reports_by_lga(self, lga: str, page: int) -> List[models.IncidentReport]:
        query = self.db.query(models.IncidentReport).filter(
            models.IncidentReport.lga_name == lga
        )
        return self._paginate(query, page)

    def get_all_reports_by_report_type(self, report_type: str, page: int) -> List[models.IncidentReport]:
        query = self.db.query(models.IncidentReport).filter(
            models.IncidentReport.category == report_type
        )
        return self._paginate(query, page)

    def get_all_reports_by_state_by_time(
        self,
        state: str,
        start_time: datetime,
        end_time: datetime,
        page: int
    ) -> List[models.IncidentReport]:
        query = self.db.query(models.IncidentReport).filter(
            models.IncidentReport.state_name == state,
            models.IncidentReport.timeof_incidence.between(start_time, end_time)
        )
        return self._paginate(query, page)

    # =========================================================================
    # Rewards
    # =========================================================================

    def _apply_reward(self, user_id: int, reward: models.Reward) -> models.Reward:
        existing = self.db.query(models.Reward).filter(
            models.Reward.user_id == user_id
        ).first()

        if existing is None:
            reward.user_id = user_id
            self.db.add(reward)
            self.db.flush()
            return reward

        existing.reward_type = reward.reward_type
        existing.point = reward.point
        existing.incident_report_id = reward.incident_report_id
        if reward.balance:
            existing.balance = reward.balance
        self.db.flush()
        return existing

    def update_reward(self, user_id: int, reward: models.Reward) -> models.Reward:
        """
        Find-or-create the user's reward.

        A new row is created from ``reward`` when the user has none. Otherwise
        type, point and report id are overwritten, and the balance is
        overwritten only when the incoming balance is non-zero.
        """
        try:
            saved = self._apply_reward(user_id, reward)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(saved)
        return saved

    def has_previous_reports(self, user_id: int) -> bool:
        reward = self.db.query(models.Reward).filter(
            models.Reward.user_id == user_id,
            models.Reward.balance > 0
        ).first()
        return reward is not None

    def get_reward_by_user_id(self, user_id: int) -> models.Reward:
        reward = self.db.query(models.Reward).filter(models.Reward.user_id == user_id).first()
        if not reward:
            raise NotFoundError("reward", user_id)
        return reward

    # =========================================================================
    # Bookmarks
    # =========================================================================

    def check_report_in_bookmarked_report(self, user_id: int, report_id: str) -> bool:
        bookmark = self.db.query(models.BookmarkReport).filter(
            models.BookmarkReport.user_id == user_id,
            models.BookmarkReport.report_id == report_id
        ).first()
        return bookmark is not None

    def save_bookmark_report(self, bookmark: models.BookmarkReport) -> models.BookmarkReport:
        try:
            self.db.add(bookmark)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating bookmark: {e}")
            raise
        self.db.refresh(bookmark)
        logger.info(f"Bookmark saved: user={bookmark.user_id} report={bookmark.report_id}")
        return bookmark

    # =========================================================================
    # Multi-entity writes
    # =========================================================================

    def _add_state_lga_report_type(
        self,
        lga: models.LGA,
        state: models.State,
        report_type: models.ReportType,
        sub_report: models.SubReport
    ) -> None:
        self.db.add(lga)
        self.db.add(state)
        self.db.flush()

        self.db.add(report_type)
        self.db.flush()

        sub_report.report_type_id = report_type.id
        sub_report.lga_id = lga.id
        self.db.add(sub_report)
        self.db.flush()

    def save_state_lga_report_type(
        self,
        lga: models.LGA,
        state: models.State,
        report_type: models.ReportType,
        sub_report: models.SubReport
    ) -> None:
        """
        Insert LGA, State, ReportType and SubReport in one transaction.
        Any failed insert rolls back all four.
        """
        try:
            self._add_state_lga_report_type(lga, state, report_type, sub_report)
            self.db.commit()
        except Exception as e:
            logger.error(f"Rolling back state/LGA/report type save: {e}")
            self.db.rollback()
            raise

    def save_report_submission(
        self,
        report: models.IncidentReport,
        lga: models.LGA,
        state: models.State,
        report_type: models.ReportType,
        sub_report: models.SubReport,
        reward: models.Reward
    ) -> models.Reward:
        """
        Save a submitted report with its LGA, State, ReportType, SubReport
        and the reporter's reward in a single transaction.

        The reward is linked to the new report and applied with the same
        rules as ``update_reward``. Any failure rolls back every row.
        """
        try:
            self.db.add(report)
            self.db.flush()

            self._add_state_lga_report_type(lga, state, report_type, sub_report)

            reward.incident_report_id = report.id
            saved_reward = self._apply_reward(report.user_id, reward)

            self.db.commit()
        except Exception as e:
            logger.error(f"Rolling back report submission: {e}")
            self.db.rollback()
            raise

        self.db.refresh(report)
        self.db.refresh(saved_reward)
        return saved_reward

    def delete_by_id(self, sub_report_id: str) -> None:
        sub_report = self.db.query(models.SubReport).filter(
            models.SubReport.id == sub_report_id
        ).first()
        if not sub_report:
            raise NotFoundError("sub report", sub_report_id)
        self.db.delete(sub_report)
        self.db.commit()

    # =========================================================================
    # Aggregations
    # =========================================================================

    def get_report_percentage_by_state(self) -> List[Dict]:
        query = text("""
            SELECT
                state_name,
                COUNT(*) AS report_count,
                (COUNT(*) * 100.0 / (SELECT COUNT(*) FROM incident_reports)) AS percentage
            FROM incident_reports
            GROUP BY state_name
            ORDER BY report_count DESC
        """)
        result = self.db.execute(query)
        return [
            {'state_name': row.state_name, 'count': row.report_count, 'percentage': float(row.percentage)}
            for row in result
        ]

    def get_reports_posted_today_count(self) -> int:
        now = datetime.utcnow()
        start_of_today = datetime(now.year, now.month, now.day)
        return self.db.query(models.IncidentReport).filter(
            models.IncidentReport.timeof_incidence >= start_of_today
        ).count()

    def get_reports_by_type_and_lga(self, report_type: str, lga: str) -> List[models.SubReport]:
        return (
            self.db.query(models.SubReport)
            .join(models.ReportType, models.ReportType.id == models.SubReport.report_type_id)
            .join(models.LGA, models.LGA.id == models.SubReport.lga_id)
            .filter(models.ReportType.category == report_type, models.LGA.name == lga)
            .all()
        )

    def get_report_type_counts(
        self,
        state: str,
        lga: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> Dict:
        """
        Category breakdown for one state and LGA.

        Returns report types with their counts, the number of distinct
        reporting users, the total number of reports, and every state's
        report count for the LGA. The date filter applies only when both
        dates are given (YYYY-MM-DD).

        Raises:
            ValueError: If a date cannot be parsed
        """
        params = {'state': state, 'lga': lga}
        date_filter = ""
        if start_date and end_date:
            params['start'] = parse_date(start_date, "start")
            params['end'] = parse_date(end_date, "end")
            date_filter = " AND rt.date_of_incidence BETWEEN :start AND :end"

        query = text(f"""
            SELECT rt.category AS category, COUNT(*) AS category_count,
                   (SELECT COUNT(DISTINCT u.user_id) FROM report_types u
                     WHERE u.state_name = :state AND u.lga_name = :lga) AS total_users,
                   (SELECT COUNT(*) FROM report_types t
                     WHERE t.state_name = :state AND t.lga_name = :lga) AS total_reports
            FROM report_types rt
            WHERE rt.state_name = :state AND rt.lga_name = :lga{date_filter}
            GROUP BY rt.category
        """)
        if 'start' in params:
            query = query.bindparams(
                bindparam('start', type_=DateTime), bindparam('end', type_=DateTime)
            )

        report_types = []
        counts = []
        total_users = 0
        total_reports = 0
        for row in self.db.execute(query, params):
            report_types.append(row.category)
            counts.append(row.category_count)
            total_users = row.total_users
            total_reports = row.total_reports

        top_states_params = {'lga': lga}
        top_states_filter = ""
        if 'start' in params:
            top_states_params['start'] = params['start']
            top_states_params['end'] = params['end']
            top_states_filter = " AND date_of_incidence BETWEEN :start AND :end"

        top_states_query = text(f"""
            SELECT state_name, COUNT(*) AS report_count
            FROM report_types
            WHERE lga_name = :lga{top_states_filter}
            GROUP BY state_name
            ORDER BY report_count DESC
        """)
        if 'start' in params:
            top_states_query = top_states_query.bindparams(
                bindparam('start', type_=DateTime), bindparam('end', type_=DateTime)
            )
        top_states = [
            {'state_name': row.state_name, 'report_count': row.report_count}
            for row in self.db.execute(top_states_query, top_states_params)
        ]

        return {
            'report_types': report_types,
            'counts': counts,
            'total_users': total_users,
            'total_reports': total_reports,
            'top_states': top_states,
        }

    def get_state_report_counts(self) -> List[Dict]:
        rows = (
            self.db.query(models.ReportType.state_name, func.count(models.ReportType.id).label('report_count'))
            .group_by(models.ReportType.state_name)
            .all()
        )
        return [{'state_name': r.state_name, 'report_count': r.report_count} for r in rows]

    def get_variadic_state_report_counts(
        self,
        report_types: Optional[List[str]] = None,
        states: Optional[List[str]] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> List[Dict]:
        """Report counts grouped by state and category, with optional filters."""
        query = self.db.query(
            models.ReportType.state_name,
            models.ReportType.category,
            func.count(models.ReportType.id).label('report_count')
        )

        if report_types:
            query = query.filter(models.ReportType.category.in_(report_types))
        if states:
            query = query.filter(models.ReportType.state_name.in_(states))

        if start_date and end_date:
            query = query.filter(models.ReportType.date_of_incidence.between(start_date, end_date))
        elif start_date:
            query = query.filter(models.ReportType.date_of_incidence >= start_date)
        elif end_date:
            query = query.filter(models.ReportType.date_of_incidence <= end_date)

        query = query.filter(models.ReportType.state_name != '')
        query = query.group_by(models.ReportType.state_name, models.ReportType.category)

        logger.debug(f"Variadic state report count query: {query}")

        return [
            {'state_name': r.state_name, 'category': r.category, 'report_count': r.report_count}
            for r in query.all()
        ]

    def get_all_categories(self) -> List[str]:
        rows = self.db.query(models.ReportType.category).distinct().all()
        return [r[0] for r in rows]

    def get_all_states(self) -> List[str]:
        rows = self.db.query(models.ReportType.state_name).distinct().all()
        return [r[0] for r in rows]

    def get_rating_percentages(self, report_type: str, state: str) -> Dict[str, float]:
        """
        Share of good and bad ratings for a category in a state.
        Both percentages are 0.0 when there are no matching reports.
        """
        base = self.db.query(models.ReportType).filter(
            models.ReportType.category == report_type,
            models.ReportType.state_name == state
        )
        total_count = base.count()
        good_count = base.filter(models.ReportType.incident_report_rating == 'good').count()
        bad_count = base.filter(models.ReportType.incident_report_rating == 'bad').count()

        if total_count == 0:
            return {'good_percentage': 0.0, 'bad_percentage': 0.0}

        return {
            'good_percentage': good_count / total_count * 100,
            'bad_percentage': bad_count / total_count * 100,
        }

    def get_report_counts_by_state_and_lga(self) -> List[Dict]:
        rows = (
            self.db.query(
                models.ReportType.state_name,
                models.ReportType.lga_name,
                func.count().label('report_count')
            )
            .group_by(models.ReportType.state_name, models.ReportType.lga_name)
            .all()
        )
        return [{'state_name': r.state_name, 'lga_name': r.lga_name, 'count': r.report_count} for r in rows]

    def list_all_states_with_report_counts(self) -> List[Dict]:
        """Top states by report count."""
        query = text("""
            SELECT state_name, COUNT(*) AS report_count
            FROM report_types
            GROUP BY state_name
            ORDER BY report_count DESC
            LIMIT :limit
        """)
        result = self.db.execute(query, {'limit': TOP_STATES_LIMIT})
        return [{'state_name': r.state_name, 'report_count': r.report_count} for r in result]

    def get_total_report_count(self) -> int:
        return self.db.query(models.ReportType).count()

    def get_incident_markers(self) -> List[Dict]:
        """Map markers: one per distinct (state, lat, lng) with the state's report count."""
        query = text("""
            SELECT
                incident_reports.latitude AS lat,
                incident_reports.longitude AS lng,
                incident_reports.state_name AS popup,
                COALESCE(report_counts.count, 0) AS report_count
            FROM incident_reports
            LEFT JOIN (
                SELECT state_name, COUNT(*) AS count
                FROM incident_reports
                GROUP BY state_name
            ) AS report_counts ON incident_reports.state_name = report_counts.state_name
            GROUP BY incident_reports.state_name, incident_reports.latitude,
                     incident_reports.longitude, report_counts.count
        """)
        result = self.db.execute(query)
        return [
            {'lat': row.lat, 'lng': row.lng, 'popup': row.popup, 'count': row.report_count}
            for row in result
        ]

    def get_names_by_category(self, state_name: str, lga_id: str, category: str) -> List[str]:
        rows = self.db.query(models.SubReport.sub_report_type).filter(
            models.SubReport.state_name == state_name,
            models.SubReport.lga_id == lga_id,
            models.SubReport.report_type_category == category
        ).all()
        return [r[0] for r in rows]
