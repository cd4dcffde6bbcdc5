"""
Session correlator.

Rebuilds device sessions from the scattered kernel lines a USB plug-in
produces:

    usb 1-1: New USB device found, idVendor=0781, idProduct=5567, bcdDevice= 1.00
    usb 1-1: Product: Cruzer Blade
    usb 1-1: Manufacturer: SanDisk
    usb 1-1: SerialNumber: 4C530001230308117292
    usb-storage 1-1:1.0: USB Mass Storage device detected
    ...
    usb 1-1: USB disconnect, device number 5

The correlator is a small state machine driven by an explicit transition
table, so every (state, input) pair can be tested on its own.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable

from usbtrail.core.models import ActionKind, ClassifiedLine, DeviceSession

__all__ = [
    "CorrelatorState",
    "LineInput",
    "Action",
    "Transition",
    "TRANSITIONS",
    "SessionCorrelator",
    "correlate_sessions",
]


NEW_DEVICE_MARKER = "New USB device found, "


class CorrelatorState(Enum):
    """Which attribute line the correlator expects next."""
    IDLE = "idle"
    EXPECT_PRODUCT = "expect_product"
    EXPECT_MANUFACTURER = "expect_manufacturer"
    EXPECT_SERIAL = "expect_serial"
    EXPECT_STORAGE = "expect_storage"


class LineInput(Enum):
    """Classified line as seen by the state machine."""
    NEW_DEVICE = "new_device"
    ATTRIBUTE = "attribute"
    DISCONNECT = "disconnect"
    IGNORED = "ignored"

    @classmethod
    def from_line(cls, line: ClassifiedLine) -> "LineInput":
        if line.kind is ActionKind.CONNECTED:
            if NEW_DEVICE_MARKER in line.raw:
                return cls.NEW_DEVICE
            return cls.ATTRIBUTE
        if line.kind is ActionKind.DISCONNECTED:
            return cls.DISCONNECT
        return cls.IGNORED


class Action(Enum):
    """What the correlator does with a line."""
    START_SESSION = "start_session"
    SET_PRODUCT = "set_product"
    SET_MANUFACTURER = "set_manufacturer"
    SET_SERIAL = "set_serial"
    MARK_MASS_STORAGE = "mark_mass_storage"
    CLOSE_SESSIONS = "close_sessions"
    IGNORE = "ignore"


@dataclass(frozen=True)
class Transition:
    """
    Table entry: the action to run and the state to enter.

    ``next_state`` applies when the action succeeds. An attribute action
    that cannot extract its value sends the machine back to IDLE.
    """
    action: Action
    next_state: CorrelatorState


def _build_transitions() -> dict[tuple[CorrelatorState, LineInput], Transition]:
    table: dict[tuple[CorrelatorState, LineInput], Transition] = {}

    for state in CorrelatorState:
        # A new device always opens a session, whatever was in progress
        table[(state, LineInput.NEW_DEVICE)] = Transition(
            Action.START_SESSION, CorrelatorState.EXPECT_PRODUCT
        )
        table[(state, LineInput.DISCONNECT)] = Transition(Action.CLOSE_SESSIONS, state)
        table[(state, LineInput.IGNORED)] = Transition(Action.IGNORE, state)

    table[(CorrelatorState.IDLE, LineInput.ATTRIBUTE)] = Transition(
        Action.IGNORE, CorrelatorState.IDLE
    )
    table[(CorrelatorState.EXPECT_PRODUCT, LineInput.ATTRIBUTE)] = Transition(
        Action.SET_PRODUCT, CorrelatorState.EXPECT_MANUFACTURER
    )
    table[(CorrelatorState.EXPECT_MANUFACTURER, LineInput.ATTRIBUTE)] = Transition(
        Action.SET_MANUFACTURER, CorrelatorState.EXPECT_SERIAL
    )
    table[(CorrelatorState.EXPECT_SERIAL, LineInput.ATTRIBUTE)] = Transition(
        Action.SET_SERIAL, CorrelatorState.EXPECT_STORAGE
    )
    table[(CorrelatorState.EXPECT_STORAGE, LineInput.ATTRIBUTE)] = Transition(
        Action.MARK_MASS_STORAGE, CorrelatorState.IDLE
    )
    return table


TRANSITIONS = _build_transitions()


class SessionCorrelator:
    """
    Convert an ordered sequence of classified lines into device sessions.

    Sessions live in a single list owned by the correlator for one run and
    are filled in place; the most recently started session receives the
    attribute lines. A disconnect closes every session on its port.

    Example:
        correlator = SessionCorrelator()
        sessions = correlator.correlate(classified_lines)
    """

    HOST_PATTERN = re.compile(
        r'[A-Z][a-z]{2}\s+\d{1,2}\s\d{2}:\d{2}:\d{2}\s+'   # Syslog timestamp
        r'(?P<host>\S+)\s'                                  # Hostname
    )
    VENDOR_PATTERN = re.compile(r'idVendor=(\w+)')
    PRODUCT_ID_PATTERN = re.compile(r'idProduct=(\w+)')
    PORT_PATTERN = re.compile(r'\busb (\S*\d):')
    PRODUCT_PATTERN = re.compile(r'Product: (.+)$')
    MANUFACTURER_PATTERN = re.compile(r'Manufacturer: (.+)$')
    SERIAL_PATTERN = re.compile(r'SerialNumber: (.+)$')
    STORAGE_PATTERN = re.compile(r'usb-storage (.+)$')

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the correlator.

        Args:
            clock: Supplies the provisional disconnect time of open sessions
        """
        self.clock = clock
        self.state = CorrelatorState.IDLE
        self.sessions: list[DeviceSession] = []

    def reset(self) -> None:
        """Forget all sessions and return to IDLE."""
        self.state = CorrelatorState.IDLE
        self.sessions = []

    def correlate(self, lines: Iterable[ClassifiedLine]) -> list[DeviceSession]:
        """
        Run the state machine over all lines.

        Args:
            lines: Classified lines in file-concatenation order

        Returns:
            Sessions in creation order
        """
        for line in lines:
            self.feed(line)
        return self.sessions

    def feed(self, line: ClassifiedLine) -> CorrelatorState:
        """
        Process one line and return the resulting state.
        """
        transition = TRANSITIONS[(self.state, LineInput.from_line(line))]
        succeeded = self._apply(transition.action, line)

        if succeeded:
            self.state = transition.next_state
        else:
            self.state = CorrelatorState.IDLE
        return self.state

    def _apply(self, action: Action, line: ClassifiedLine) -> bool:
        """Run an action; False means an expected attribute was missing."""
        match action:
            case Action.START_SESSION:
                self.sessions.append(self._new_session(line))
                return True
            case Action.SET_PRODUCT:
                return self._set_attribute("product_name", self.PRODUCT_PATTERN, line)
            case Action.SET_MANUFACTURER:
                return self._set_attribute("manufacturer_name", self.MANUFACTURER_PATTERN, line)
            case Action.SET_SERIAL:
                return self._set_attribute("serial_number", self.SERIAL_PATTERN, line)
            case Action.MARK_MASS_STORAGE:
                # Last link of the chain: IDLE follows whether or not it matched
                if _submatch(self.STORAGE_PATTERN, line.raw):
                    self.sessions[-1].is_mass_storage = True
                return True
            case Action.CLOSE_SESSIONS:
                self._close_sessions(line)
                return True
            case _:
                return True

    def _new_session(self, line: ClassifiedLine) -> DeviceSession:
        return DeviceSession(
            connected_at=line.timestamp,
            disconnected_at=self.clock(),
            host=_submatch(self.HOST_PATTERN, line.raw),
            vendor_id=_submatch(self.VENDOR_PATTERN, line.raw),
            product_id=_submatch(self.PRODUCT_ID_PATTERN, line.raw),
            connection_port=_submatch(self.PORT_PATTERN, line.raw),
        )

    def _set_attribute(self, attribute: str, pattern: re.Pattern, line: ClassifiedLine) -> bool:
        value = _submatch(pattern, line.raw)
        if not value:
            return False
        setattr(self.sessions[-1], attribute, value)
        return True

    def _close_sessions(self, line: ClassifiedLine) -> None:
        port = _submatch(self.PORT_PATTERN, line.raw)
        if not port:
            return
        # Every session seen on this port is closed, not only the latest
        for session in self.sessions:
            if session.connection_port == port:
                session.disconnected_at = line.timestamp


def _submatch(pattern: re.Pattern, text: str) -> str:
    """First capture group of the first match, or "" when absent."""
    match = pattern.search(text)
    if match:
        return match.group(1).strip()
    return ""


def correlate_sessions(
    lines: Iterable[ClassifiedLine],
    clock: Callable[[], datetime] = datetime.now,
) -> list[DeviceSession]:
    """Correlate lines with a fresh SessionCorrelator."""
    return SessionCorrelator(clock=clock).correlate(lines)
