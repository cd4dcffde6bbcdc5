"""
Correlation of classified log lines into device sessions.
"""

from usbtrail.infrastructure.correlation.state_machine import (
    CorrelatorState,
    LineInput,
    Action,
    Transition,
    TRANSITIONS,
    SessionCorrelator,
    correlate_sessions,
)

__all__ = [
    "CorrelatorState",
    "LineInput",
    "Action",
    "Transition",
    "TRANSITIONS",
    "SessionCorrelator",
    "correlate_sessions",
]
