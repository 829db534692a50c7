"""Builds competition summaries and results from the stored stats"""
import logging
from collections import defaultdict
from typing import Dict, List, Optional

from folding_tc.errors import SystemStateError
from folding_tc.models.competition import Category, Team, User
from folding_tc.models.summary import CompetitionSummary, MonthlyResult, TeamLeaderboardEntry, TeamSummary, UserCategoryLeaderboardEntry
from folding_tc.services.storage import StorageService
from folding_tc.state import StateManager
from folding_tc.summary import (
    CompetitionSummaryBuilder,
    LeaderboardGenerator,
    TeamSummaryBuilder,
    UserContribution,
    captain_name_for,
)

logger = logging.getLogger(__name__)

class CompetitionService:
    """Reads everything from storage, then computes summaries over that snapshot"""

    def __init__(self, storage: StorageService, state_manager: Optional[StateManager] = None):
        self.storage = storage
        self.state_manager = state_manager
        self.team_builder = TeamSummaryBuilder()
        self.competition_builder = CompetitionSummaryBuilder()
        self.leaderboards = LeaderboardGenerator()

    def competition_summary(self) -> CompetitionSummary:
        """
        Build the ranked summary of every team.

        Raises:
            DanglingReferenceError: If a user references a team or hardware that does not exist
            SystemStateError: If stats are currently being reset
        """
        if self.state_manager is not None and self.state_manager.system_state.is_read_blocked:
            raise SystemStateError(self.state_manager.system_state, "read competition stats")

        logger.debug("Calculating latest TC result")
        teams = self.storage.list_teams()
        users_by_team = defaultdict(list)
        for user in self.storage.list_users():
            users_by_team[user.team.id].append(user)

        team_summaries = [self._team_summary(team, users_by_team[team.id]) for team in teams]
        logger.debug(f"Found {len(team_summaries)} TC teams")
        return self.competition_builder.build_competition_summary(team_summaries)

    def team_summary(self, team_id: int) -> TeamSummary:
        """Unranked summary for a single team"""
        team = self.storage.get_team(team_id)
        return self._team_summary(team, self.storage.list_active_users_for_team(team_id))

    def team_leaderboard(self) -> List[TeamLeaderboardEntry]:
        return self.leaderboards.team_leaderboard(self.competition_summary())

    def category_leaderboards(self) -> Dict[Category, List[UserCategoryLeaderboardEntry]]:
        return self.leaderboards.category_leaderboards(self.competition_summary())

    def store_monthly_result(self) -> MonthlyResult:
        """Store the current leaderboards as the result for the month, unless nothing was earned"""
        result = self.leaderboards.monthly_result(self.competition_summary())
        if result.has_no_stats():
            logger.error(f"Not storing result, result has no stats: {result.utc_timestamp}")
            return result

        self.storage.persist_monthly_result(result)
        logger.info(f"Storing TC results for {result.utc_timestamp}")
        return result

    def _team_summary(self, team: Team, users: List[User]) -> TeamSummary:
        logger.debug(f"Converting team '{team.name}' for TC stats")
        contributions = []
        for user in users:
            stats = self.storage.get_competition_stats(user.id)
            logger.debug(f"Results for {user.display_name}: {stats.points} points | "
                         f"{stats.multiplied_points} multiplied points | {stats.units} units")
            contributions.append(UserContribution(user=user, stats=stats))

        retired = self.storage.list_retired_for_team(team.id)
        return self.team_builder.build_team_summary(team, captain_name_for(team, users), contributions, retired)
