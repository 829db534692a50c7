"""Domain models for hardware, teams and users in the competition"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, FrozenSet

from folding_tc.config import settings

class _ParsableEnum(Enum):
    """Enum that can be looked up case-insensitively by name"""

    @classmethod
    def parse(cls, value: Optional[str]):
        """Return the member matching value (ignoring case), or None if there is no match"""
        if value is None:
            return None
        return cls.__members__.get(value.strip().upper())

class HardwareMake(_ParsableEnum):
    AMD = "AMD"
    INTEL = "INTEL"
    NVIDIA = "NVIDIA"

class HardwareType(_ParsableEnum):
    CPU = "CPU"
    GPU = "GPU"

class Category(_ParsableEnum):
    """Competition category a user folds in, limiting which hardware they may use"""
    AMD_GPU = "AMD_GPU"
    NVIDIA_GPU = "NVIDIA_GPU"
    WILDCARD = "WILDCARD"

    @property
    def permitted_users(self) -> int:
        """Number of users permitted in this category for a single team"""
        return {
            Category.AMD_GPU: settings.USERS_IN_AMD_GPU,
            Category.NVIDIA_GPU: settings.USERS_IN_NVIDIA_GPU,
            Category.WILDCARD: settings.USERS_IN_WILDCARD,
        }[self]

    @property
    def supported_hardware_makes(self) -> FrozenSet[HardwareMake]:
        if self is Category.AMD_GPU:
            return frozenset({HardwareMake.AMD})
        if self is Category.NVIDIA_GPU:
            return frozenset({HardwareMake.NVIDIA})
        return frozenset(HardwareMake)

    @property
    def supported_hardware_types(self) -> FrozenSet[HardwareType]:
        if self is Category.WILDCARD:
            return frozenset(HardwareType)
        return frozenset({HardwareType.GPU})

    def supports(self, hardware: 'Hardware') -> bool:
        """Whether the hardware may be used by a user in this category"""
        return (hardware.make in self.supported_hardware_makes
                and hardware.type in self.supported_hardware_types)

    @classmethod
    def maximum_permitted_users(cls) -> int:
        """Maximum number of users a team can have across all categories"""
        return sum(category.permitted_users for category in cls)

@dataclass(frozen=True)
class Hardware:
    """A piece of folding hardware and its competition multiplier"""
    id: int
    name: str
    display_name: str
    make: HardwareMake
    type: HardwareType
    multiplier: float
    average_ppd: int = 0

@dataclass(frozen=True)
class Team:
    """A competition team"""
    id: int
    name: str
    description: Optional[str] = None
    forum_link: Optional[str] = None

@dataclass(frozen=True)
class User:
    """A folding user taking part in the competition"""
    id: int
    folding_username: str
    display_name: str
    passkey: str
    category: Category
    hardware: Hardware
    team: Team
    is_captain: bool = False
    profile_link: Optional[str] = None
    live_stats_link: Optional[str] = None

    def with_hardware(self, hardware: Hardware) -> 'User':
        return replace(self, hardware=hardware)

    def with_team(self, team: Team) -> 'User':
        return replace(self, team=team)
