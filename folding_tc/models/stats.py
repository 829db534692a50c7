"""Domain models for raw and competition stats"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)

@dataclass(frozen=True)
class RawStats:
    """Lifetime points and units for a user, as reported by the stats API"""
    points: int = 0
    units: int = 0
    timestamp: datetime = field(default_factory=utc_now)

    def is_empty(self) -> bool:
        return self.points == 0 and self.units == 0

@dataclass(frozen=True)
class StatsOffset:
    """Additive correction applied on top of a user's competition stats"""
    points_offset: int = 0
    multiplied_points_offset: int = 0
    units_offset: int = 0

    def is_empty(self) -> bool:
        return (self.points_offset == 0
                and self.multiplied_points_offset == 0
                and self.units_offset == 0)

    def __add__(self, other: 'StatsOffset') -> 'StatsOffset':
        return StatsOffset(
            points_offset=self.points_offset + other.points_offset,
            multiplied_points_offset=self.multiplied_points_offset + other.multiplied_points_offset,
            units_offset=self.units_offset + other.units_offset
        )

@dataclass(frozen=True)
class CompetitionStats:
    """A user's competition stats for the current period (UserTcStats)"""
    user_id: int
    points: int = 0
    multiplied_points: int = 0
    units: int = 0
    timestamp: datetime = field(default_factory=utc_now)

    def is_empty(self) -> bool:
        return self.points == 0 and self.multiplied_points == 0 and self.units == 0

@dataclass(frozen=True)
class RetiredMemberRecord:
    """Frozen final contribution of a user who left a team"""
    team_id: int
    display_name: str
    final_points: int
    final_multiplied_points: int
    final_units: int
    retired_id: int = 0
    user_id: Optional[int] = None

class UserChangeType(Enum):
    STATE = "STATE"
    TEAM = "TEAM"

@dataclass(frozen=True)
class UserChange:
    """A state change requested while stats parsing was disabled"""
    user_id: int
    change_type: UserChangeType
    previous_team_id: Optional[int] = None
    id: int = 0
    created_at: datetime = field(default_factory=utc_now)
