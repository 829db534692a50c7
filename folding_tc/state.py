"""System and parsing state shared by the stats updater and state change handling"""
import logging
import threading
from enum import Enum

logger = logging.getLogger(__name__)

class ParsingState(Enum):
    """Whether competition stats are currently being ingested"""
    DISABLED = "DISABLED"
    ENABLED_TEAM_COMPETITION = "ENABLED_TEAM_COMPETITION"

class SystemState(Enum):
    """Overall system state, determining which operations external callers may run"""
    AVAILABLE = ("AVAILABLE", True, True)
    RESETTING_STATS = ("RESETTING_STATS", False, False)
    STARTING = ("STARTING", False, False)
    UPDATING_STATS = ("UPDATING_STATS", True, False)
    WRITE_EXECUTED = ("WRITE_EXECUTED", True, True)

    def __init__(self, label: str, read_permitted: bool, write_permitted: bool):
        self.read_permitted = read_permitted
        self.write_permitted = write_permitted

    @property
    def is_read_blocked(self) -> bool:
        return not self.read_permitted

    @property
    def is_write_blocked(self) -> bool:
        return not self.write_permitted

class StateManager:
    """Thread-safe holder for the current system and parsing state"""

    def __init__(self, system_state: SystemState = SystemState.STARTING,
                 parsing_state: ParsingState = ParsingState.DISABLED):
        self._lock = threading.Lock()
        self._system_state = system_state
        self._parsing_state = parsing_state

    @property
    def system_state(self) -> SystemState:
        with self._lock:
            return self._system_state

    @property
    def parsing_state(self) -> ParsingState:
        with self._lock:
            return self._parsing_state

    @property
    def is_parsing_enabled(self) -> bool:
        return self.parsing_state is not ParsingState.DISABLED

    def next_system_state(self, state: SystemState) -> None:
        with self._lock:
            if self._system_state is not state:
                logger.debug(f"System state: {self._system_state.name} -> {state.name}")
            self._system_state = state

    def next_parsing_state(self, state: ParsingState) -> None:
        with self._lock:
            if self._parsing_state is not state:
                logger.info(f"Parsing state: {self._parsing_state.name} -> {state.name}")
            self._parsing_state = state
