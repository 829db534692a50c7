"""Database storage service for competition entities and stats"""
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Generator, List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from folding_tc.db import Database
from folding_tc.errors import DanglingReferenceError, NotFoundError
from folding_tc.models.competition import Category, Hardware, HardwareMake, HardwareType, Team, User
from folding_tc.models.db import (
    HardwareRow,
    MonthlyResultRow,
    PendingUserChange,
    RetiredUserStats,
    TeamRow,
    UserInitialStats,
    UserOffsetStats,
    UserRow,
    UserTcStatsHourly,
    UserTotalStats,
)
from folding_tc.models.stats import (
    CompetitionStats,
    RawStats,
    RetiredMemberRecord,
    StatsOffset,
    UserChange,
    UserChangeType,
)
from folding_tc.models.summary import MonthlyResult

logger = logging.getLogger(__name__)

class StorageService:
    """Handles all database operations"""

    def __init__(self, database: Database):
        self.database = database

    @contextmanager
    def _session(self, operation: str) -> Generator[Session, None, None]:
        try:
            with self.database.session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Database error {operation}: {e}")
            raise

    # Hardware

    def create_hardware(self, hardware: Hardware) -> Hardware:
        with self._session("creating hardware") as session:
            row = HardwareRow(
                name=hardware.name,
                display_name=hardware.display_name,
                make=hardware.make.name,
                type=hardware.type.name,
                multiplier=hardware.multiplier,
                average_ppd=hardware.average_ppd
            )
            session.add(row)
            session.flush()
            return self._to_hardware(row)

    def get_hardware(self, hardware_id: int) -> Hardware:
        with self._session("getting hardware") as session:
            row = session.get(HardwareRow, hardware_id)
            if row is None:
                raise NotFoundError("hardware", hardware_id)
            return self._to_hardware(row)

    def list_hardware(self) -> List[Hardware]:
        with self._session("listing hardware") as session:
            return [self._to_hardware(row) for row in session.query(HardwareRow).order_by(HardwareRow.id)]

    def update_hardware(self, hardware: Hardware) -> Hardware:
        with self._session("updating hardware") as session:
            row = session.get(HardwareRow, hardware.id)
            if row is None:
                raise NotFoundError("hardware", hardware.id)
            row.name = hardware.name
            row.display_name = hardware.display_name
            row.make = hardware.make.name
            row.type = hardware.type.name
            row.multiplier = hardware.multiplier
            row.average_ppd = hardware.average_ppd
            return self._to_hardware(row)

    def delete_hardware(self, hardware_id: int) -> None:
        with self._session("deleting hardware") as session:
            session.query(HardwareRow).filter_by(id=hardware_id).delete()

    def get_hardware_multiplier(self, hardware_id: int) -> float:
        return self.get_hardware(hardware_id).multiplier

    # Teams

    def create_team(self, team: Team) -> Team:
        with self._session("creating team") as session:
            row = TeamRow(name=team.name, description=team.description, forum_link=team.forum_link)
            session.add(row)
            session.flush()
            return self._to_team(row)

    def get_team(self, team_id: int) -> Team:
        with self._session("getting team") as session:
            row = session.get(TeamRow, team_id)
            if row is None:
                raise NotFoundError("team", team_id)
            return self._to_team(row)

    def list_teams(self) -> List[Team]:
        with self._session("listing teams") as session:
            return [self._to_team(row) for row in session.query(TeamRow).order_by(TeamRow.id)]

    def update_team(self, team: Team) -> Team:
        with self._session("updating team") as session:
            row = session.get(TeamRow, team.id)
            if row is None:
                raise NotFoundError("team", team.id)
            row.name = team.name
            row.description = team.description
            row.forum_link = team.forum_link
            return self._to_team(row)

    def delete_team(self, team_id: int) -> None:
        with self._session("deleting team") as session:
            session.query(TeamRow).filter_by(id=team_id).delete()

    # Users

    def create_user(self, user: User) -> User:
        with self._session("creating user") as session:
            row = UserRow()
            self._copy_user(user, row)
            session.add(row)
            session.flush()
            return self._to_user(session, row)

    def get_user(self, user_id: int) -> User:
        with self._session("getting user") as session:
            row = session.get(UserRow, user_id)
            if row is None:
                raise NotFoundError("user", user_id)
            return self._to_user(session, row)

    def list_users(self) -> List[User]:
        with self._session("listing users") as session:
            return [self._to_user(session, row) for row in session.query(UserRow).order_by(UserRow.id)]

    def list_users_on_hardware(self, hardware_id: int) -> List[User]:
        with self._session("listing users on hardware") as session:
            rows = session.query(UserRow).filter_by(hardware_id=hardware_id).order_by(UserRow.id)
            return [self._to_user(session, row) for row in rows]

    def list_active_users_for_team(self, team_id: int) -> List[User]:
        with self._session("listing users on team") as session:
            rows = session.query(UserRow).filter_by(team_id=team_id).order_by(UserRow.id)
            return [self._to_user(session, row) for row in rows]

    def update_user(self, user: User) -> User:
        with self._session("updating user") as session:
            row = session.get(UserRow, user.id)
            if row is None:
                raise NotFoundError("user", user.id)
            self._copy_user(user, row)
            return self._to_user(session, row)

    def delete_user(self, user_id: int) -> None:
        with self._session("deleting user") as session:
            session.query(UserRow).filter_by(id=user_id).delete()

    # Baselines and offsets

    def get_baseline(self, user_id: int) -> Optional[RawStats]:
        with self._session("getting initial stats") as session:
            row = session.get(UserInitialStats, user_id)
            if row is None:
                return None
            return RawStats(points=row.points, units=row.units, timestamp=row.utc_timestamp)

    def persist_baseline(self, user_id: int, baseline: RawStats) -> None:
        with self._session("storing initial stats") as session:
            self._write_baseline(session, user_id, baseline)

    def get_offset(self, user_id: int) -> StatsOffset:
        with self._session("getting offset stats") as session:
            row = session.get(UserOffsetStats, user_id)
            if row is None:
                return StatsOffset()
            return StatsOffset(
                points_offset=row.points_offset,
                multiplied_points_offset=row.multiplied_points_offset,
                units_offset=row.units_offset
            )

    def persist_offset(self, user_id: int, offset: StatsOffset) -> StatsOffset:
        """Add an offset onto the user's stored offset, returning the cumulative value"""
        with self._session("storing offset stats") as session:
            return self._add_offset(session, user_id, offset)

    def delete_all_offsets(self) -> None:
        with self._session("deleting offset stats") as session:
            deleted = session.query(UserOffsetStats).delete()
            logger.info(f"Deleted {deleted} offset stats")

    def reset_baseline(self, user_id: int, baseline: RawStats, offset: StatsOffset) -> None:
        """
        Store a new baseline and replace the user's offset in a single transaction.

        The offset replaces rather than adds to the stored one, since the competition
        stats it is taken from already include the previous offset.
        """
        with self._session("resetting initial stats") as session:
            self._write_baseline(session, user_id, baseline)
            session.query(UserOffsetStats).filter_by(user_id=user_id).delete()
            self._add_offset(session, user_id, offset)

    # Total and competition stats

    def persist_total_stats(self, user_id: int, total: RawStats) -> None:
        with self._session("storing total stats") as session:
            session.add(UserTotalStats(
                user_id=user_id,
                points=total.points,
                units=total.units,
                utc_timestamp=total.timestamp
            ))

    def get_total_stats(self, user_id: int) -> Optional[RawStats]:
        with self._session("getting total stats") as session:
            row = session.query(UserTotalStats).filter_by(user_id=user_id) \
                .order_by(UserTotalStats.utc_timestamp.desc(), UserTotalStats.id.desc()).first()
            if row is None:
                return None
            return RawStats(points=row.points, units=row.units, timestamp=row.utc_timestamp)

    def persist_competition_stats(self, stats: CompetitionStats) -> CompetitionStats:
        with self._session("storing TC stats") as session:
            self._add_competition_stats(session, stats)
            return stats

    def persist_user_update(self, total: RawStats, stats: CompetitionStats) -> None:
        """Store the raw total and the competition stats calculated from it together"""
        with self._session("storing user stats update") as session:
            session.add(UserTotalStats(
                user_id=stats.user_id,
                points=total.points,
                units=total.units,
                utc_timestamp=total.timestamp
            ))
            self._add_competition_stats(session, stats)

    def get_competition_stats(self, user_id: int) -> CompetitionStats:
        """Latest competition stats for the user, empty if none have been calculated"""
        with self._session("getting TC stats") as session:
            row = session.query(UserTcStatsHourly).filter_by(user_id=user_id) \
                .order_by(UserTcStatsHourly.utc_timestamp.desc(), UserTcStatsHourly.id.desc()).first()
            if row is None:
                return CompetitionStats(user_id=user_id)
            return self._to_competition_stats(row)

    def list_competition_stats_between(self, user_id: int, start: datetime, end: datetime) -> List[CompetitionStats]:
        """Every competition stats row for the user from start (inclusive) to end (exclusive), oldest first"""
        with self._session("listing historic TC stats") as session:
            rows = session.query(UserTcStatsHourly) \
                .filter(UserTcStatsHourly.user_id == user_id,
                        UserTcStatsHourly.utc_timestamp >= start,
                        UserTcStatsHourly.utc_timestamp < end) \
                .order_by(UserTcStatsHourly.utc_timestamp, UserTcStatsHourly.id)
            return [self._to_competition_stats(row) for row in rows]

    def get_competition_stats_before(self, user_id: int, moment: datetime) -> Optional[CompetitionStats]:
        """Latest competition stats row for the user strictly before moment"""
        with self._session("getting historic TC stats") as session:
            row = session.query(UserTcStatsHourly) \
                .filter(UserTcStatsHourly.user_id == user_id, UserTcStatsHourly.utc_timestamp < moment) \
                .order_by(UserTcStatsHourly.utc_timestamp.desc(), UserTcStatsHourly.id.desc()).first()
            if row is None:
                return None
            return self._to_competition_stats(row)

    # Retired users

    def persist_retired_member(self, record: RetiredMemberRecord) -> RetiredMemberRecord:
        with self._session("storing retired user stats") as session:
            return self._add_retired(session, record)

    def retire_user(self, record: RetiredMemberRecord, baseline: RawStats) -> RetiredMemberRecord:
        """
        Store a retired user snapshot and restart the user's stats from a new baseline.

        The user's running competition stats are reset to zero so the new team starts
        counting from nothing. Everything is written in a single transaction.
        """
        with self._session("retiring user") as session:
            created = self._add_retired(session, record)
            self._write_baseline(session, record.user_id, baseline)
            session.query(UserOffsetStats).filter_by(user_id=record.user_id).delete()
            self._add_competition_stats(session, CompetitionStats(user_id=record.user_id, timestamp=baseline.timestamp))
            return created

    def list_retired_for_team(self, team_id: int) -> List[RetiredMemberRecord]:
        with self._session("listing retired users") as session:
            rows = session.query(RetiredUserStats).filter_by(team_id=team_id).order_by(RetiredUserStats.retired_user_id)
            return [self._to_retired(row) for row in rows]

    def delete_all_retired(self) -> None:
        with self._session("deleting retired users") as session:
            deleted = session.query(RetiredUserStats).delete()
            logger.info(f"Deleted {deleted} retired users")

    # Monthly results

    def persist_monthly_result(self, result: MonthlyResult) -> None:
        with self._session("storing monthly result") as session:
            session.add(MonthlyResultRow(
                utc_timestamp=result.utc_timestamp,
                result=result.model_dump(mode='json', by_alias=True)
            ))

    def list_monthly_results(self) -> List[MonthlyResult]:
        with self._session("listing monthly results") as session:
            rows = session.query(MonthlyResultRow).order_by(MonthlyResultRow.utc_timestamp)
            return [MonthlyResult.model_validate(row.result) for row in rows]

    # Pending user changes

    def add_pending_change(self, change: UserChange) -> UserChange:
        with self._session("storing pending user change") as session:
            row = PendingUserChange(
                user_id=change.user_id,
                change_type=change.change_type.value,
                previous_team_id=change.previous_team_id,
                created_at=change.created_at
            )
            session.add(row)
            session.flush()
            return self._to_user_change(row)

    def list_pending_changes(self) -> List[UserChange]:
        with self._session("listing pending user changes") as session:
            rows = session.query(PendingUserChange).order_by(PendingUserChange.created_at, PendingUserChange.id)
            return [self._to_user_change(row) for row in rows]

    def delete_pending_change(self, change_id: int) -> None:
        with self._session("deleting pending user change") as session:
            session.query(PendingUserChange).filter_by(id=change_id).delete()

    def delete_all_pending_changes(self) -> None:
        with self._session("deleting pending user changes") as session:
            session.query(PendingUserChange).delete()

    # Helpers

    @staticmethod
    def _write_baseline(session: Session, user_id: int, baseline: RawStats) -> None:
        row = session.get(UserInitialStats, user_id)
        if row is None:
            row = UserInitialStats(user_id=user_id)
            session.add(row)
        row.points = baseline.points
        row.units = baseline.units
        row.utc_timestamp = baseline.timestamp

    @staticmethod
    def _add_offset(session: Session, user_id: int, offset: StatsOffset) -> StatsOffset:
        row = session.get(UserOffsetStats, user_id)
        if row is None:
            row = UserOffsetStats(user_id=user_id, points_offset=0, multiplied_points_offset=0, units_offset=0)
            session.add(row)
        row.points_offset += offset.points_offset
        row.multiplied_points_offset += offset.multiplied_points_offset
        row.units_offset += offset.units_offset
        return StatsOffset(
            points_offset=row.points_offset,
            multiplied_points_offset=row.multiplied_points_offset,
            units_offset=row.units_offset
        )

    @staticmethod
    def _add_competition_stats(session: Session, stats: CompetitionStats) -> None:
        session.add(UserTcStatsHourly(
            user_id=stats.user_id,
            points=stats.points,
            multiplied_points=stats.multiplied_points,
            units=stats.units,
            utc_timestamp=stats.timestamp
        ))

    def _add_retired(self, session: Session, record: RetiredMemberRecord) -> RetiredMemberRecord:
        row = RetiredUserStats(
            team_id=record.team_id,
            user_id=record.user_id,
            display_name=record.display_name,
            final_points=record.final_points,
            final_multiplied_points=record.final_multiplied_points,
            final_units=record.final_units
        )
        session.add(row)
        session.flush()
        return self._to_retired(row)

    @staticmethod
    def _copy_user(user: User, row: UserRow) -> None:
        row.folding_username = user.folding_username
        row.display_name = user.display_name
        row.passkey = user.passkey
        row.category = user.category.name
        row.hardware_id = user.hardware.id
        row.team_id = user.team.id
        row.is_captain = user.is_captain
        row.profile_link = user.profile_link
        row.live_stats_link = user.live_stats_link

    @staticmethod
    def _to_hardware(row: HardwareRow) -> Hardware:
        return Hardware(
            id=row.id,
            name=row.name,
            display_name=row.display_name,
            make=HardwareMake[row.make],
            type=HardwareType[row.type],
            multiplier=row.multiplier,
            average_ppd=row.average_ppd
        )

    @staticmethod
    def _to_competition_stats(row: UserTcStatsHourly) -> CompetitionStats:
        return CompetitionStats(
            user_id=row.user_id,
            points=row.points,
            multiplied_points=row.multiplied_points,
            units=row.units,
            timestamp=row.utc_timestamp
        )

    @staticmethod
    def _to_team(row: TeamRow) -> Team:
        return Team(id=row.id, name=row.name, description=row.description, forum_link=row.forum_link)

    def _to_user(self, session: Session, row: UserRow) -> User:
        hardware_row = session.get(HardwareRow, row.hardware_id)
        if hardware_row is None:
            raise DanglingReferenceError("user", row.id, "hardware", row.hardware_id)
        team_row = session.get(TeamRow, row.team_id)
        if team_row is None:
            raise DanglingReferenceError("user", row.id, "team", row.team_id)

        return User(
            id=row.id,
            folding_username=row.folding_username,
            display_name=row.display_name,
            passkey=row.passkey,
            category=Category[row.category],
            hardware=self._to_hardware(hardware_row),
            team=self._to_team(team_row),
            is_captain=bool(row.is_captain),
            profile_link=row.profile_link,
            live_stats_link=row.live_stats_link
        )

    @staticmethod
    def _to_retired(row: RetiredUserStats) -> RetiredMemberRecord:
        return RetiredMemberRecord(
            retired_id=row.retired_user_id,
            team_id=row.team_id,
            user_id=row.user_id,
            display_name=row.display_name,
            final_points=row.final_points,
            final_multiplied_points=row.final_multiplied_points,
            final_units=row.final_units
        )

    @staticmethod
    def _to_user_change(row: PendingUserChange) -> UserChange:
        return UserChange(
            id=row.id,
            user_id=row.user_id,
            change_type=UserChangeType(row.change_type),
            previous_team_id=row.previous_team_id,
            created_at=row.created_at
        )
