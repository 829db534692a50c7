"""Team and competition summaries, plus the leaderboards derived from them"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from folding_tc.models.competition import Category, Team, User
from folding_tc.models.stats import CompetitionStats, RetiredMemberRecord
from folding_tc.models.summary import (
    CompetitionSummary,
    MonthlyResult,
    RetiredMemberSummary,
    TeamInfo,
    TeamLeaderboardEntry,
    TeamSummary,
    UNRANKED,
    UserCategoryLeaderboardEntry,
    UserSummary,
)
from folding_tc.ranking import rank

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class UserContribution:
    """An active user together with their current competition stats"""
    user: User
    stats: CompetitionStats

def captain_name_for(team: Team, users: Iterable[User]) -> Optional[str]:
    """Display name of the team captain, or None if the team has no captain"""
    for user in users:
        if user.is_captain:
            return user.display_name
    logger.warning(f"No captain set for team '{team.name}'")
    return None

class TeamSummaryBuilder:
    """Aggregates a team's active and retired members into a TeamSummary"""

    def build_team_summary(self, team: Team, captain_name: Optional[str],
                           active_users: Sequence[UserContribution],
                           retired: Sequence[RetiredMemberRecord]) -> TeamSummary:
        """
        Build an unranked TeamSummary.

        Active users are ranked among themselves, retired users are ranked
        among themselves after every active user, regardless of points.
        """
        user_summaries = [
            UserSummary.create(
                contribution.user,
                contribution.stats.points,
                contribution.stats.multiplied_points,
                contribution.stats.units
            )
            for contribution in active_users
        ]
        retired_summaries = [RetiredMemberSummary.from_record(record) for record in retired]

        total_points = sum(summary.points for summary in user_summaries) + \
            sum(summary.points for summary in retired_summaries)
        total_multiplied_points = sum(summary.multiplied_points for summary in user_summaries) + \
            sum(summary.multiplied_points for summary in retired_summaries)
        total_units = sum(summary.units for summary in user_summaries) + \
            sum(summary.units for summary in retired_summaries)

        return TeamSummary(
            team=TeamInfo.from_team(team),
            captain_name=captain_name,
            total_points=total_points,
            total_multiplied_points=total_multiplied_points,
            total_units=total_units,
            rank=UNRANKED,
            active_users=rank(user_summaries),
            retired_users=rank(retired_summaries, len(user_summaries))
        )

class CompetitionSummaryBuilder:
    """Aggregates every team into the overall CompetitionSummary"""

    def build_competition_summary(self, team_summaries: Sequence[TeamSummary]) -> CompetitionSummary:
        if not team_summaries:
            logger.warning("No TC teams to show")

        return CompetitionSummary(
            total_points=sum(team.total_points for team in team_summaries),
            total_multiplied_points=sum(team.total_multiplied_points for team in team_summaries),
            total_units=sum(team.total_units for team in team_summaries),
            teams=rank(team_summaries)
        )

class LeaderboardGenerator:
    """Builds team and per-category user leaderboards from a CompetitionSummary"""

    def team_leaderboard(self, summary: CompetitionSummary) -> List[TeamLeaderboardEntry]:
        teams = sorted(summary.teams, key=lambda team: (team.rank, team.team.id))
        if not teams:
            return []

        leader = teams[0]
        entries = []
        for index, team in enumerate(teams):
            team_ahead = teams[index - 1] if index > 0 else team
            entries.append(TeamLeaderboardEntry(
                team=team.team,
                points=team.total_points,
                multiplied_points=team.total_multiplied_points,
                units=team.total_units,
                rank=team.rank,
                diff_to_leader=leader.total_multiplied_points - team.total_multiplied_points,
                diff_to_next=team_ahead.total_multiplied_points - team.total_multiplied_points
            ))
        return entries

    def category_leaderboards(self, summary: CompetitionSummary) -> Dict[Category, List[UserCategoryLeaderboardEntry]]:
        """Active users of every team ranked within their category, every category is present"""
        users_by_category: Dict[Category, list] = {category: [] for category in Category}
        for team in summary.teams:
            for user in team.active_users:
                users_by_category[user.category].append((user, team.team))

        leaderboards = {}
        for category, users in users_by_category.items():
            leaderboards[category] = self._category_leaderboard(users)
        return leaderboards

    def _category_leaderboard(self, users) -> List[UserCategoryLeaderboardEntry]:
        if not users:
            return []

        team_by_user_id = {user.id: team for user, team in users}
        summary_by_user_id = {user.id: user for user, _ in users}
        ranked = rank([user for user, _ in users])
        leader = ranked[0]
        entries = []
        for index, user in enumerate(ranked):
            user_ahead = ranked[index - 1] if index > 0 else user
            entries.append(UserCategoryLeaderboardEntry(
                user=summary_by_user_id[user.id],
                team=team_by_user_id[user.id],
                points=user.points,
                multiplied_points=user.multiplied_points,
                units=user.units,
                rank=user.rank_in_team,
                diff_to_leader=leader.multiplied_points - user.multiplied_points,
                diff_to_next=user_ahead.multiplied_points - user.multiplied_points
            ))
        return entries

    def monthly_result(self, summary: CompetitionSummary) -> MonthlyResult:
        return MonthlyResult(
            team_leaderboard=self.team_leaderboard(summary),
            user_category_leaderboard=self.category_leaderboards(summary)
        )
