"""Shared fixtures for competition stats tests."""

import pytest

from folding_tc.db import Database
from folding_tc.errors import ExternalConnectionError
from folding_tc.models.competition import Category, Hardware, HardwareMake, HardwareType, Team, User
from folding_tc.models.stats import RawStats
from folding_tc.services.storage import StorageService


@pytest.fixture
def database():
    database = Database()
    database.init("sqlite://")
    yield database
    database.dispose()


@pytest.fixture
def storage(database):
    return StorageService(database)


@pytest.fixture
def gpu(storage):
    return storage.create_hardware(Hardware(
        id=0,
        name="Navi 21 [Radeon RX 6800]",
        display_name="AMD Radeon RX 6800",
        make=HardwareMake.AMD,
        type=HardwareType.GPU,
        multiplier=2.0,
        average_ppd=3_000_000
    ))


@pytest.fixture
def team(storage):
    return storage.create_team(Team(id=0, name="Team One"))


@pytest.fixture
def other_team(storage):
    return storage.create_team(Team(id=0, name="Team Two"))


@pytest.fixture
def user(storage, gpu, team):
    return storage.create_user(User(
        id=0,
        folding_username="folder",
        display_name="Folder",
        passkey="abc123",
        category=Category.AMD_GPU,
        hardware=gpu,
        team=team,
        is_captain=True
    ))


def make_hardware(hardware_id: int = 1, multiplier: float = 1.0) -> Hardware:
    return Hardware(
        id=hardware_id,
        name=f"hardware-{hardware_id}",
        display_name=f"Hardware {hardware_id}",
        make=HardwareMake.NVIDIA,
        type=HardwareType.GPU,
        multiplier=multiplier
    )


def make_user(user_id: int, team: Team, hardware: Hardware = None, category: Category = Category.NVIDIA_GPU,
              is_captain: bool = False) -> User:
    return User(
        id=user_id,
        folding_username=f"user{user_id}",
        display_name=f"User {user_id}",
        passkey=f"passkey{user_id}",
        category=category,
        hardware=hardware or make_hardware(),
        team=team,
        is_captain=is_captain
    )


class FakeStatsAPI:
    """Stands in for FoldingStatsAPI, returning configured lifetime totals per Folding username"""

    def __init__(self):
        self.totals = {}
        self.unreachable = set()
        self.calls = []

    def set_total(self, folding_username: str, points: int, units: int = 0) -> None:
        self.totals[folding_username] = (points, units)

    def fetch_raw_total(self, user: User) -> RawStats:
        self.calls.append(user.folding_username)
        if user.folding_username in self.unreachable:
            raise ExternalConnectionError("https://stats.example.org", "Unable to connect to Folding@Home API")
        points, units = self.totals.get(user.folding_username, (0, 0))
        return RawStats(points=points, units=units)


@pytest.fixture
def stats_api():
    return FakeStatsAPI()
