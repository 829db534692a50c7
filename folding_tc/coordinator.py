"""Handling of user, hardware and team changes that require a user's stats baseline to be reset"""
import logging
import threading
from contextlib import contextmanager
from decimal import Decimal
from typing import Dict, Generator, Optional

from sqlalchemy.exc import SQLAlchemyError

from folding_tc.errors import ExternalConnectionError, FoldingStatsError, NotFoundError
from folding_tc.models.competition import Hardware, Team, User
from folding_tc.models.stats import RetiredMemberRecord, UserChange, UserChangeType
from folding_tc.scoring import StatsAggregator
from folding_tc.services.folding import FoldingStatsAPI
from folding_tc.services.storage import StorageService
from folding_tc.state import StateManager

logger = logging.getLogger(__name__)

class UserLocks:
    """One lock per user, so a user's stats are never read and rewritten concurrently"""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.Lock] = {}

    def lock_for(self, user_id: int) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(user_id, threading.Lock())

    @contextmanager
    def hold(self, user_id: int) -> Generator[None, None, None]:
        with self.lock_for(user_id):
            yield

class StateChangeCoordinator:
    """
    Detects changes to users and hardware that invalidate a user's stats baseline,
    and applies the matching baseline reset, offset or retirement.

    Nothing is applied while stats parsing is disabled. Those changes are queued
    instead and replayed by process_pending_changes on the next stats update.
    """

    def __init__(self, storage: StorageService, stats_api: FoldingStatsAPI,
                 state_manager: StateManager, user_locks: UserLocks,
                 aggregator: Optional[StatsAggregator] = None):
        self.storage = storage
        self.stats_api = stats_api
        self.state_manager = state_manager
        self.user_locks = user_locks
        self.aggregator = aggregator or StatsAggregator()

    def is_user_state_change(self, updated: User, existing: User) -> bool:
        """Whether a user edit changes hardware, Folding username or passkey"""
        if existing.hardware.id != updated.hardware.id:
            logger.debug(f"User '{existing.display_name}' (ID: {existing.id}) had state change to hardware, "
                         f"{existing.hardware.name} -> {updated.hardware.name}")
            return True

        if existing.folding_username.lower() != updated.folding_username.lower():
            logger.debug(f"User '{existing.display_name}' (ID: {existing.id}) had state change to Folding username, "
                         f"{existing.folding_username} -> {updated.folding_username}")
            return True

        if existing.passkey.lower() != updated.passkey.lower():
            logger.debug(f"User '{existing.display_name}' (ID: {existing.id}) had state change to passkey")
            return True

        logger.debug(f"No state change required for updated user '{updated.display_name}' (ID: {updated.id})")
        return False

    def is_team_change(self, updated: User, existing: User) -> bool:
        if existing.team.id != updated.team.id:
            logger.info(f"User '{existing.display_name}' (ID: {existing.id}) moved from team "
                        f"'{existing.team.name}' -> '{updated.team.name}'")
            return True
        return False

    def is_hardware_state_change(self, updated: Hardware, existing: Hardware) -> bool:
        """Whether the multiplier changed, compared at its decimal value"""
        if Decimal(str(existing.multiplier)) != Decimal(str(updated.multiplier)):
            logger.debug(f"Hardware '{updated.name}' (ID: {updated.id}) had state change to multiplier, "
                         f"{existing.multiplier} -> {updated.multiplier}")
            return True
        return False

    def handle_user_update(self, updated: User, existing: User) -> None:
        """Apply whatever stats changes a user edit requires"""
        if self.is_team_change(updated, existing):
            self.handle_team_change(updated, existing.team)
        elif self.is_user_state_change(updated, existing):
            self.handle_state_change(updated)

    def handle_hardware_change(self, hardware: Hardware) -> None:
        """Reset the baseline of every user on hardware whose multiplier changed"""
        users = self.storage.list_users_on_hardware(hardware.id)
        logger.info(f"Hardware '{hardware.name}' (ID: {hardware.id}) changed, handling {len(users)} users")
        for user in users:
            self.handle_state_change(user)

    def handle_state_change(self, user: User) -> bool:
        """
        Restart a user's stats from their current raw total, keeping their competition stats as an offset.

        Returns True if the change was applied. A failure to reach the stats API
        leaves the user's baseline and offset untouched.
        """
        if not self.state_manager.is_parsing_enabled:
            self._defer(UserChange(user_id=user.id, change_type=UserChangeType.STATE), user)
            return False

        with self.user_locks.hold(user.id):
            try:
                raw_total = self.stats_api.fetch_raw_total(user)
            except ExternalConnectionError as e:
                logger.error(f"Unable to update the state of user '{user.display_name}' (ID: {user.id}): {e}")
                return False

            current_stats = self.storage.get_competition_stats(user.id)
            offset = self.aggregator.offset_from_stats(current_stats)
            logger.debug(f"Setting initial stats to: {raw_total}")
            self.storage.reset_baseline(user.id, raw_total, offset)
            logger.debug(f"Set offset stats to: {offset}")

        logger.info(f"Handled state change for user '{user.display_name}' (ID: {user.id})")
        return True

    def handle_team_change(self, user: User, old_team: Team) -> bool:
        """
        Retire a user's current stats to their old team and restart them from zero.

        Returns True if the change was applied. A failure to reach the stats API
        leaves everything untouched and no retired record is created.
        """
        if not self.state_manager.is_parsing_enabled:
            self._defer(UserChange(user_id=user.id, change_type=UserChangeType.TEAM, previous_team_id=old_team.id), user)
            return False

        with self.user_locks.hold(user.id):
            try:
                raw_total = self.stats_api.fetch_raw_total(user)
            except ExternalConnectionError as e:
                logger.error(f"Unable to retire user '{user.display_name}' (ID: {user.id}): {e}")
                return False

            current_stats = self.storage.get_competition_stats(user.id)
            record = RetiredMemberRecord(
                team_id=old_team.id,
                user_id=user.id,
                display_name=user.display_name,
                final_points=current_stats.points,
                final_multiplied_points=current_stats.multiplied_points,
                final_units=current_stats.units
            )
            created = self.storage.retire_user(record, raw_total)

        logger.info(f"User '{user.display_name}' (ID: {user.id}) retired from team '{old_team.name}' "
                    f"with retired stats ID: {created.retired_id}")
        return True

    def process_pending_changes(self) -> int:
        """Apply changes queued while parsing was disabled, returning how many were applied"""
        if not self.state_manager.is_parsing_enabled:
            return 0

        applied = 0
        for change in self.storage.list_pending_changes():
            try:
                handled = self._apply_pending_change(change)
            except NotFoundError as e:
                logger.warning(f"Dropping pending change {change.id} for user {change.user_id}: {e}")
                self.storage.delete_pending_change(change.id)
                continue
            except (FoldingStatsError, SQLAlchemyError) as e:
                logger.error(f"Unable to apply pending change {change.id} for user {change.user_id}, keeping it queued: {e}")
                continue

            if handled:
                self.storage.delete_pending_change(change.id)
                applied += 1

        if applied:
            logger.info(f"Applied {applied} pending user changes")
        return applied

    def _apply_pending_change(self, change: UserChange) -> bool:
        """
        Raises:
            NotFoundError: If the user, or the old team of a team change, no longer exists
        """
        user = self.storage.get_user(change.user_id)
        if change.change_type is UserChangeType.TEAM:
            old_team = self.storage.get_team(change.previous_team_id)
            return self.handle_team_change(user, old_team)
        return self.handle_state_change(user)

    def _defer(self, change: UserChange, user: User) -> None:
        logger.info(f"Received a {change.change_type.value.lower()} change for user '{user.display_name}' "
                    f"(ID: {user.id}), but system is not currently parsing stats, queueing it")
        self.storage.add_pending_change(change)
