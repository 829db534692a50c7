"""
Custom exceptions for the competition stats system.
"""
from typing import Optional

class FoldingStatsError(Exception):
    """Base exception for competition stats errors."""

class ExternalConnectionError(FoldingStatsError):
    """Raised when the Folding@Home stats API cannot be reached or returns an unusable response."""
    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url

class NotFoundError(FoldingStatsError):
    """Raised when a referenced entity does not exist."""
    def __init__(self, entity: str, entity_id: int):
        super().__init__(f"No {entity} found with ID: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id

class DanglingReferenceError(FoldingStatsError):
    """Raised when a summary cannot be built because an entity references a missing one."""
    def __init__(self, source: str, source_id: int, entity: str, entity_id: Optional[int]):
        super().__init__(f"{source} {source_id} references missing {entity} {entity_id}")
        self.source = source
        self.source_id = source_id
        self.entity = entity
        self.entity_id = entity_id

class SystemStateError(FoldingStatsError):
    """Raised when an operation is not permitted in the current system state."""
    def __init__(self, state, operation: str):
        super().__init__(f"Cannot {operation} while system is {state.name}")
        self.state = state
        self.operation = operation
