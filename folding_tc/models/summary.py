"""Ranked summary models returned to the presentation layer"""
from datetime import datetime
from typing import Dict, List, Optional, Protocol, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from folding_tc.models.competition import Category, Hardware, HardwareMake, HardwareType, Team, User
from folding_tc.models.stats import RetiredMemberRecord, utc_now

UNRANKED = 0

R = TypeVar('R', bound='RankableSummary')

class RankableSummary(Protocol):
    """Anything that can be sorted by a value and handed back with a new rank"""

    @property
    def rank_value(self) -> int: ...

    @property
    def tie_break_key(self) -> int: ...

    def with_rank(self: R, rank: int) -> R: ...

class SummaryModel(BaseModel):
    """Immutable model serialized with camelCase field names"""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

class HardwareInfo(SummaryModel):
    id: int
    name: str
    display_name: str
    make: HardwareMake
    type: HardwareType
    multiplier: float
    average_ppd: int

    @classmethod
    def from_hardware(cls, hardware: Hardware) -> 'HardwareInfo':
        return cls(
            id=hardware.id,
            name=hardware.name,
            display_name=hardware.display_name,
            make=hardware.make,
            type=hardware.type,
            multiplier=hardware.multiplier,
            average_ppd=hardware.average_ppd
        )

class TeamInfo(SummaryModel):
    id: int
    name: str
    description: Optional[str] = None
    forum_link: Optional[str] = None

    @classmethod
    def from_team(cls, team: Team) -> 'TeamInfo':
        return cls(id=team.id, name=team.name, description=team.description, forum_link=team.forum_link)

class UserSummary(SummaryModel):
    """An active user's competition stats within their team"""
    id: int
    display_name: str
    folding_username: str
    category: Category
    hardware: HardwareInfo
    profile_link: Optional[str] = None
    live_stats_link: Optional[str] = None
    points: int = 0
    multiplied_points: int = 0
    units: int = 0
    rank_in_team: int = UNRANKED

    @classmethod
    def create(cls, user: User, points: int, multiplied_points: int, units: int) -> 'UserSummary':
        """Create an unranked summary, the passkey is never exposed"""
        return cls(
            id=user.id,
            display_name=user.display_name,
            folding_username=user.folding_username,
            category=user.category,
            hardware=HardwareInfo.from_hardware(user.hardware),
            profile_link=user.profile_link,
            live_stats_link=user.live_stats_link,
            points=points,
            multiplied_points=multiplied_points,
            units=units
        )

    @property
    def rank_value(self) -> int:
        return self.multiplied_points

    @property
    def tie_break_key(self) -> int:
        return self.id

    def with_rank(self, rank: int) -> 'UserSummary':
        return self.model_copy(update={'rank_in_team': rank})

class RetiredMemberSummary(SummaryModel):
    """A retired user's frozen contribution to a team"""
    id: int
    display_name: str
    points: int = 0
    multiplied_points: int = 0
    units: int = 0
    rank_in_team: int = UNRANKED

    @classmethod
    def from_record(cls, record: RetiredMemberRecord) -> 'RetiredMemberSummary':
        return cls(
            id=record.retired_id,
            display_name=record.display_name,
            points=record.final_points,
            multiplied_points=record.final_multiplied_points,
            units=record.final_units
        )

    @property
    def rank_value(self) -> int:
        return self.multiplied_points

    @property
    def tie_break_key(self) -> int:
        return self.id

    def with_rank(self, rank: int) -> 'RetiredMemberSummary':
        return self.model_copy(update={'rank_in_team': rank})

class TeamSummary(SummaryModel):
    """
    A team's totals with its ranked active and retired members.

    The team rank is only meaningful once the team has been ranked against
    the other teams in a CompetitionSummary, until then it is UNRANKED.
    """
    team: TeamInfo
    captain_name: Optional[str] = None
    total_points: int = 0
    total_multiplied_points: int = 0
    total_units: int = 0
    rank: int = UNRANKED
    active_users: List[UserSummary] = Field(default_factory=list)
    retired_users: List[RetiredMemberSummary] = Field(default_factory=list)

    @property
    def rank_value(self) -> int:
        return self.total_multiplied_points

    @property
    def tie_break_key(self) -> int:
        return self.team.id

    def with_rank(self, rank: int) -> 'TeamSummary':
        return self.model_copy(update={'rank': rank})

class CompetitionSummary(SummaryModel):
    """Overall competition totals with every team ranked"""
    total_points: int = 0
    total_multiplied_points: int = 0
    total_units: int = 0
    teams: List[TeamSummary] = Field(default_factory=list)

class TeamLeaderboardEntry(SummaryModel):
    team: TeamInfo
    points: int
    multiplied_points: int
    units: int
    rank: int
    diff_to_leader: int = 0
    diff_to_next: int = 0

class UserCategoryLeaderboardEntry(SummaryModel):
    user: UserSummary
    team: TeamInfo
    points: int
    multiplied_points: int
    units: int
    rank: int
    diff_to_leader: int = 0
    diff_to_next: int = 0

class MonthlyResult(SummaryModel):
    """Final leaderboards for a competition month"""
    team_leaderboard: List[TeamLeaderboardEntry] = Field(default_factory=list)
    user_category_leaderboard: Dict[Category, List[UserCategoryLeaderboardEntry]] = Field(default_factory=dict)
    utc_timestamp: datetime = Field(default_factory=utc_now)

    def has_no_stats(self) -> bool:
        """True when no team has earned anything, in which case the result is not worth storing"""
        total_points = sum(entry.points for entry in self.team_leaderboard)
        total_multiplied_points = sum(entry.multiplied_points for entry in self.team_leaderboard)
        total_units = sum(entry.units for entry in self.team_leaderboard)
        return max(total_points, 0) == 0 and max(total_multiplied_points, 0) == 0 and max(total_units, 0) == 0

class HistoricStats(SummaryModel):
    """Stats gained within one hour, day or month, keyed by the start of that period"""
    date_time: datetime
    points: int = 0
    multiplied_points: int = 0
    units: int = 0
