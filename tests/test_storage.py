"""
Tests for the database storage service, run against in-memory SQLite.
"""

from datetime import datetime

import pytest

from folding_tc.errors import DanglingReferenceError, NotFoundError
from folding_tc.models.competition import Category
from folding_tc.models.stats import CompetitionStats, RawStats, RetiredMemberRecord, StatsOffset, UserChange, UserChangeType
from folding_tc.models.summary import MonthlyResult, TeamInfo, TeamLeaderboardEntry


class TestEntities:
    """Tests for hardware, team and user storage."""

    def test_user_round_trip(self, storage, user, gpu, team):
        stored = storage.get_user(user.id)
        assert stored == user
        assert stored.hardware == gpu
        assert stored.team == team
        assert stored.category is Category.AMD_GPU

    def test_missing_user(self, storage):
        with pytest.raises(NotFoundError):
            storage.get_user(99)

    def test_hardware_multiplier(self, storage, gpu):
        assert storage.get_hardware_multiplier(gpu.id) == 2.0

    def test_missing_hardware_multiplier(self, storage):
        with pytest.raises(NotFoundError):
            storage.get_hardware_multiplier(99)

    def test_users_on_hardware_and_team(self, storage, user, gpu, team, other_team):
        assert storage.list_users_on_hardware(gpu.id) == [user]
        assert storage.list_active_users_for_team(team.id) == [user]
        assert storage.list_active_users_for_team(other_team.id) == []

    def test_update_user_team(self, storage, user, other_team):
        moved = storage.update_user(user.with_team(other_team))
        assert moved.team == other_team

    def test_dangling_team_reference(self, storage, user, team):
        storage.delete_team(team.id)
        with pytest.raises(DanglingReferenceError):
            storage.list_users()

    def test_dangling_hardware_reference(self, storage, user, gpu):
        storage.delete_hardware(gpu.id)
        with pytest.raises(DanglingReferenceError):
            storage.get_user(user.id)


class TestBaselinesAndOffsets:
    """Tests for baseline and offset storage."""

    def test_no_baseline(self, storage, user):
        assert storage.get_baseline(user.id) is None

    def test_baseline_overwritten(self, storage, user):
        storage.persist_baseline(user.id, RawStats(points=100, units=1))
        storage.persist_baseline(user.id, RawStats(points=250, units=3))
        baseline = storage.get_baseline(user.id)
        assert (baseline.points, baseline.units) == (250, 3)

    def test_no_offset_is_empty(self, storage, user):
        assert storage.get_offset(user.id).is_empty()

    def test_offsets_accumulate(self, storage, user):
        storage.persist_offset(user.id, StatsOffset(points_offset=10))
        cumulative = storage.persist_offset(user.id, StatsOffset(points_offset=-3))
        assert cumulative.points_offset == 7
        assert storage.get_offset(user.id).points_offset == 7
        assert storage.get_offset(user.id).points_offset == 7

    def test_delete_all_offsets(self, storage, user):
        storage.persist_offset(user.id, StatsOffset(points_offset=10))
        storage.delete_all_offsets()
        assert storage.get_offset(user.id).is_empty()

    def test_reset_baseline_replaces_offset(self, storage, user):
        storage.persist_offset(user.id, StatsOffset(points_offset=10, multiplied_points_offset=20))
        storage.reset_baseline(user.id, RawStats(points=1_500, units=15), StatsOffset(500, 1_000, 5))

        assert storage.get_baseline(user.id).points == 1_500
        assert storage.get_offset(user.id) == StatsOffset(500, 1_000, 5)


class TestStats:
    """Tests for total and competition stats storage."""

    def test_no_competition_stats_is_empty(self, storage, user):
        stats = storage.get_competition_stats(user.id)
        assert stats.user_id == user.id
        assert stats.is_empty()

    def test_latest_competition_stats(self, storage, user):
        storage.persist_competition_stats(CompetitionStats(user_id=user.id, points=10, multiplied_points=20, units=1))
        storage.persist_competition_stats(CompetitionStats(user_id=user.id, points=30, multiplied_points=60, units=2))
        stats = storage.get_competition_stats(user.id)
        assert (stats.points, stats.multiplied_points, stats.units) == (30, 60, 2)

    def test_competition_stats_between(self, storage, user):
        for hour in (9, 10, 11, 12):
            storage.persist_competition_stats(CompetitionStats(user_id=user.id, points=hour,
                                                               timestamp=datetime(2024, 5, 3, hour)))
        rows = storage.list_competition_stats_between(user.id, datetime(2024, 5, 3, 10), datetime(2024, 5, 3, 12))
        assert [stats.points for stats in rows] == [10, 11]
        assert rows[0].timestamp == datetime(2024, 5, 3, 10)

    def test_competition_stats_before(self, storage, user):
        assert storage.get_competition_stats_before(user.id, datetime(2024, 5, 3)) is None
        storage.persist_competition_stats(CompetitionStats(user_id=user.id, points=1, timestamp=datetime(2024, 5, 1)))
        storage.persist_competition_stats(CompetitionStats(user_id=user.id, points=2, timestamp=datetime(2024, 5, 2)))
        storage.persist_competition_stats(CompetitionStats(user_id=user.id, points=3, timestamp=datetime(2024, 5, 3)))
        assert storage.get_competition_stats_before(user.id, datetime(2024, 5, 3)).points == 2

    def test_user_update_stores_total_and_stats(self, storage, user):
        total = RawStats(points=5_000, units=50)
        storage.persist_user_update(total, CompetitionStats(user_id=user.id, points=100, multiplied_points=200, units=2))
        assert storage.get_total_stats(user.id).points == 5_000
        assert storage.get_competition_stats(user.id).multiplied_points == 200


class TestRetiredUsers:
    """Tests for retired user storage."""

    def test_retire_user(self, storage, user, team):
        storage.persist_offset(user.id, StatsOffset(points_offset=10))
        storage.persist_competition_stats(CompetitionStats(user_id=user.id, points=100, multiplied_points=200, units=2))

        record = RetiredMemberRecord(
            team_id=team.id,
            user_id=user.id,
            display_name=user.display_name,
            final_points=100,
            final_multiplied_points=200,
            final_units=2
        )
        created = storage.retire_user(record, RawStats(points=9_000, units=90))

        assert created.retired_id > 0
        assert storage.list_retired_for_team(team.id) == [created]
        assert storage.get_baseline(user.id).points == 9_000
        assert storage.get_offset(user.id).is_empty()
        assert storage.get_competition_stats(user.id).is_empty()

    def test_delete_all_retired(self, storage, team):
        storage.persist_retired_member(RetiredMemberRecord(
            team_id=team.id, display_name="Gone", final_points=1, final_multiplied_points=1, final_units=1
        ))
        storage.delete_all_retired()
        assert storage.list_retired_for_team(team.id) == []


class TestMonthlyResults:
    """Tests for monthly result storage."""

    def test_round_trip(self, storage):
        result = MonthlyResult(
            team_leaderboard=[TeamLeaderboardEntry(
                team=TeamInfo(id=1, name="Team One"), points=10, multiplied_points=20, units=1, rank=1
            )],
            user_category_leaderboard={category: [] for category in Category}
        )
        storage.persist_monthly_result(result)

        stored = storage.list_monthly_results()
        assert len(stored) == 1
        assert stored[0].team_leaderboard == result.team_leaderboard
        assert set(stored[0].user_category_leaderboard) == set(Category)


class TestPendingChanges:
    """Tests for the pending user change queue."""

    def test_queue_in_order(self, storage, user):
        first = storage.add_pending_change(UserChange(user_id=user.id, change_type=UserChangeType.STATE))
        second = storage.add_pending_change(
            UserChange(user_id=user.id, change_type=UserChangeType.TEAM, previous_team_id=7)
        )

        pending = storage.list_pending_changes()
        assert [change.id for change in pending] == [first.id, second.id]
        assert pending[1].change_type is UserChangeType.TEAM
        assert pending[1].previous_team_id == 7

    def test_delete(self, storage, user):
        change = storage.add_pending_change(UserChange(user_id=user.id, change_type=UserChangeType.STATE))
        storage.delete_pending_change(change.id)
        assert storage.list_pending_changes() == []
