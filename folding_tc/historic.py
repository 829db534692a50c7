"""Hourly, daily and monthly historic stats derived from the stored competition stats rows"""
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from folding_tc.errors import SystemStateError
from folding_tc.models.stats import CompetitionStats
from folding_tc.models.summary import HistoricStats
from folding_tc.scoring import StatsAggregator
from folding_tc.services.storage import StorageService
from folding_tc.state import StateManager

logger = logging.getLogger(__name__)

class Period(Enum):
    HOURLY = "HOURLY"
    DAILY = "DAILY"
    MONTHLY = "MONTHLY"

    def bucket_start(self, timestamp: datetime) -> datetime:
        if self is Period.HOURLY:
            return timestamp.replace(minute=0, second=0, microsecond=0)
        if self is Period.DAILY:
            return timestamp.replace(hour=0, minute=0, second=0, microsecond=0)
        return datetime(timestamp.year, timestamp.month, 1)

def day_window(year: int, month: int, day: int) -> Tuple[datetime, datetime]:
    start = datetime(year, month, day)
    return start, start + timedelta(days=1)

def month_window(year: int, month: int) -> Tuple[datetime, datetime]:
    start = datetime(year, month, 1)
    end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
    return start, end

def year_window(year: int) -> Tuple[datetime, datetime]:
    return datetime(year, 1, 1), datetime(year + 1, 1, 1)

class HistoricStatsBuilder:
    """Turns a user's cumulative competition stats rows into stats gained per period"""

    def __init__(self, aggregator: Optional[StatsAggregator] = None):
        self.aggregator = aggregator or StatsAggregator()

    def build(self, rows: Sequence[CompetitionStats], previous: Optional[CompetitionStats],
              period: Period) -> List[HistoricStats]:
        """
        Build the stats gained in each period that has at least one row.

        The latest row in a period is that period's value, and the gain is measured
        against the previous period's value, or against previous for the first period.
        Without a previous row the first period's gain is its whole value. Gains are
        never negative, so a drop from a reset or retirement counts as nothing gained.
        """
        latest_by_bucket: Dict[datetime, CompetitionStats] = {}
        for stats in rows:
            latest_by_bucket[period.bucket_start(stats.timestamp)] = stats

        history = []
        last = previous
        for bucket, stats in sorted(latest_by_bucket.items()):
            gained = self.aggregator.difference(stats, last or CompetitionStats(user_id=stats.user_id))
            history.append(HistoricStats(
                date_time=bucket,
                points=gained.points,
                multiplied_points=gained.multiplied_points,
                units=gained.units
            ))
            last = stats
        return history

    def combine(self, histories: Iterable[Sequence[HistoricStats]]) -> List[HistoricStats]:
        """Sum several users' historic stats period by period"""
        totals = defaultdict(lambda: [0, 0, 0])
        for history in histories:
            for stats in history:
                total = totals[stats.date_time]
                total[0] += stats.points
                total[1] += stats.multiplied_points
                total[2] += stats.units

        return [
            HistoricStats(date_time=date_time, points=points, multiplied_points=multiplied_points, units=units)
            for date_time, (points, multiplied_points, units) in sorted(totals.items())
        ]

class HistoricStatsService:
    """Historic stats for a single user or for the active members of a team"""

    def __init__(self, storage: StorageService, state_manager: Optional[StateManager] = None,
                 builder: Optional[HistoricStatsBuilder] = None):
        self.storage = storage
        self.state_manager = state_manager
        self.builder = builder or HistoricStatsBuilder()

    def user_hourly(self, user_id: int, year: int, month: int, day: int) -> List[HistoricStats]:
        logger.debug(f"Getting hourly TC stats for user {user_id} on {year}/{month:02d}/{day:02d}")
        return self._user_history(user_id, day_window(year, month, day), Period.HOURLY)

    def user_daily(self, user_id: int, year: int, month: int) -> List[HistoricStats]:
        logger.debug(f"Getting daily TC stats for user {user_id} in {year}/{month:02d}")
        return self._user_history(user_id, month_window(year, month), Period.DAILY)

    def user_monthly(self, user_id: int, year: int) -> List[HistoricStats]:
        logger.debug(f"Getting monthly TC stats for user {user_id} in {year}")
        return self._user_history(user_id, year_window(year), Period.MONTHLY)

    def team_hourly(self, team_id: int, year: int, month: int, day: int) -> List[HistoricStats]:
        return self._team_history(team_id, day_window(year, month, day), Period.HOURLY)

    def team_daily(self, team_id: int, year: int, month: int) -> List[HistoricStats]:
        return self._team_history(team_id, month_window(year, month), Period.DAILY)

    def team_monthly(self, team_id: int, year: int) -> List[HistoricStats]:
        return self._team_history(team_id, year_window(year), Period.MONTHLY)

    def _user_history(self, user_id: int, window: Tuple[datetime, datetime], period: Period) -> List[HistoricStats]:
        self._check_readable()
        self.storage.get_user(user_id)
        return self._history(user_id, window, period)

    def _team_history(self, team_id: int, window: Tuple[datetime, datetime], period: Period) -> List[HistoricStats]:
        self._check_readable()
        team = self.storage.get_team(team_id)
        users = self.storage.list_active_users_for_team(team.id)
        logger.debug(f"Getting {period.value.lower()} TC stats for {len(users)} users of team '{team.name}'")
        return self.builder.combine(self._history(user.id, window, period) for user in users)

    def _history(self, user_id: int, window: Tuple[datetime, datetime], period: Period) -> List[HistoricStats]:
        start, end = window
        rows = self.storage.list_competition_stats_between(user_id, start, end)
        previous = self.storage.get_competition_stats_before(user_id, start)
        return self.builder.build(rows, previous, period)

    def _check_readable(self) -> None:
        if self.state_manager is not None and self.state_manager.system_state.is_read_blocked:
            raise SystemStateError(self.state_manager.system_state, "read historic stats")
