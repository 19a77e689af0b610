"""
Shared fixtures for the trnkit test suite.

The reference turn used throughout is the one a client produces for
player 3 with a single order: ship 7 changes its mission to 2.
"""

import pytest

from trnkit.trn import CommandCode, Timestamp, TurnFile


TIMESTAMP_TEXT = "12-24-200613:04:55"

# Byte sum of TIMESTAMP_TEXT
TIMESTAMP_CHECKSUM = 913


@pytest.fixture
def timestamp() -> Timestamp:
    """Timestamp of the reference turn."""
    return Timestamp.from_string(TIMESTAMP_TEXT)


@pytest.fixture
def fresh_turn(timestamp: Timestamp) -> TurnFile:
    """A new, empty turn for player 3."""
    return TurnFile(3, timestamp)


@pytest.fixture
def mission_turn(fresh_turn: TurnFile) -> TurnFile:
    """
    The reference turn, rebuilt and clean.

    Layout (Winplan format, 611 bytes):
        0       Header (28 bytes)
        28      Zero byte
        29      Command pointer (34)
        33      ShipChangeMission, Id 7, mission 2
        39      Windows trailer (316 bytes)
        355     DOS trailer (256 bytes)
    """
    fresh_turn.add_command(CommandCode.SHIP_CHANGE_MISSION, 7, b"\x02\x00")
    fresh_turn.update()
    return fresh_turn


@pytest.fixture
def mission_turn_data(mission_turn: TurnFile) -> bytes:
    """File image of the reference turn."""
    return mission_turn.to_bytes()
