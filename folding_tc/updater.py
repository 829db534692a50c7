"""Periodic competition stats ingestion and full competition resets"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable, List, Optional

from folding_tc.config import Settings
from folding_tc.coordinator import StateChangeCoordinator, UserLocks
from folding_tc.errors import ExternalConnectionError
from folding_tc.models.competition import User
from folding_tc.models.stats import CompetitionStats
from folding_tc.scoring import StatsAggregator
from folding_tc.services.folding import FoldingStatsAPI
from folding_tc.services.storage import StorageService
from folding_tc.state import ParsingState, StateManager, SystemState

logger = logging.getLogger(__name__)

class StatsUpdater:
    """
    Pulls lifetime stats for users and stores their competition stats.

    Each user is updated independently and users are updated concurrently.
    A single user's update runs under that user's lock, so it never interleaves
    with a baseline reset or retirement of the same user. A full competition
    reset never runs at the same time as an update cycle.
    """

    def __init__(self, settings: Settings, storage: StorageService, stats_api: FoldingStatsAPI,
                 state_manager: StateManager, user_locks: UserLocks,
                 coordinator: StateChangeCoordinator, aggregator: Optional[StatsAggregator] = None):
        self.storage = storage
        self.stats_api = stats_api
        self.state_manager = state_manager
        self.user_locks = user_locks
        self.coordinator = coordinator
        self.aggregator = aggregator or StatsAggregator()
        self.worker_threads = max(settings.STATS_WORKER_THREADS, 1)
        self._cycle_lock = threading.Lock()
        self._background = ThreadPoolExecutor(max_workers=1, thread_name_prefix='stats-cycle')

    def update_users(self, users: Iterable[User]) -> Future:
        """Start an update cycle in the background and return immediately"""
        return self._background.submit(self.update_users_and_wait, list(users))

    def update_users_and_wait(self, users: Iterable[User]) -> List[CompetitionStats]:
        """Run an update cycle, returning the stats of every user that was updated"""
        users = list(users)
        with self._cycle_lock:
            self.state_manager.next_parsing_state(ParsingState.ENABLED_TEAM_COMPETITION)
            self.state_manager.next_system_state(SystemState.UPDATING_STATS)
            try:
                self.coordinator.process_pending_changes()

                logger.info(f"Parsing Folding stats for {len(users)} users")
                with ThreadPoolExecutor(max_workers=self.worker_threads, thread_name_prefix='stats-user') as pool:
                    results = list(pool.map(self._update_user_and_log_errors, users))
                logger.info("Finished parsing Folding stats")
            finally:
                self.state_manager.next_system_state(SystemState.WRITE_EXECUTED)

        return [stats for stats in results if stats is not None]

    def update_user(self, user: User) -> Optional[CompetitionStats]:
        """
        Update a single user's competition stats.

        Returns None, having written nothing, when the user cannot be updated this cycle.
        """
        logger.debug(f"Updating stats for '{user.display_name}': {user}")
        if not user.passkey or not user.passkey.strip():
            logger.warning(f"Not parsing TC stats for user '{user.display_name}' (ID: {user.id}), missing passkey")
            return None

        with self.user_locks.hold(user.id):
            baseline = self.storage.get_baseline(user.id)
            if baseline is None:
                logger.warning(f"No initial stats for user '{user.display_name}' (ID: {user.id})")
                return None

            offset = self.storage.get_offset(user.id)
            if not offset.is_empty():
                logger.debug(f"{user.display_name}: {offset.multiplied_points_offset:,} offset points | "
                             f"{offset.units_offset:,} offset units")

            try:
                total = self.stats_api.fetch_raw_total(user)
            except ExternalConnectionError as e:
                logger.warning(f"Error connecting to Folding@Home API for user '{user.display_name}' (ID: {user.id}): {e}")
                return None

            multiplier = self.storage.get_hardware_multiplier(user.hardware.id)
            previous = self.storage.get_competition_stats(user.id)
            stats = self.aggregator.compute_competition_stats(total, baseline, multiplier, offset, user.id)
            self.storage.persist_user_update(total, stats)

        gained = self.aggregator.difference(stats, previous)
        logger.debug(f"{user.display_name} (ID: {user.id}): {total.points:,} total points (unmultiplied) | "
                     f"{total.units:,} total units")
        logger.debug(f"{user.display_name} (ID: {user.id}): {gained.multiplied_points:,} TC multiplied points (update) | "
                     f"{gained.units:,} TC units (update)")
        logger.info(f"{user.display_name} (ID: {user.id}): {stats.multiplied_points:,} TC points | {stats.units:,} TC units")
        return stats

    def initialise_user(self, user: User) -> bool:
        """Set a new user's baseline to their current lifetime stats"""
        with self.user_locks.hold(user.id):
            try:
                total = self.stats_api.fetch_raw_total(user)
            except ExternalConnectionError as e:
                logger.error(f"Unable to get initial stats for user '{user.display_name}' (ID: {user.id}): {e}")
                return False
            self.storage.persist_baseline(user.id, total)
            self.storage.persist_total_stats(user.id, total)
        logger.info(f"Initial stats for user '{user.display_name}' (ID: {user.id}): "
                    f"{total.points:,} points | {total.units:,} units")
        return True

    def reset_competition(self) -> None:
        """
        Start a new competition period.

        Every offset, retired user and pending change is deleted and every user is given
        a new baseline at their current lifetime stats, with a zeroed competition stats row.
        Earlier competition stats rows are kept as history. Stats parsing stays disabled
        until the next update cycle.
        """
        with self._cycle_lock:
            self.state_manager.next_parsing_state(ParsingState.DISABLED)
            self.state_manager.next_system_state(SystemState.RESETTING_STATS)
            try:
                logger.info("Resetting Team Competition stats")
                self.storage.delete_all_offsets()
                self.storage.delete_all_retired()
                self.storage.delete_all_pending_changes()

                users = self.storage.list_users()
                for user in users:
                    if self.initialise_user(user):
                        self.storage.persist_competition_stats(CompetitionStats(user_id=user.id))
                logger.info(f"Reset Team Competition stats for {len(users)} users")
            finally:
                self.state_manager.next_system_state(SystemState.WRITE_EXECUTED)

    def shutdown(self) -> None:
        self._background.shutdown(wait=True)

    def _update_user_and_log_errors(self, user: User) -> Optional[CompetitionStats]:
        try:
            return self.update_user(user)
        except Exception:
            logger.exception(f"Error updating TC stats for user '{user.display_name}' (ID: {user.id})")
            return None
