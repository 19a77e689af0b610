"""
trnkit - VGA Planets v3 Turn File Toolkit
=========================================

This package reads and writes the turn files (TRN) of VGA Planets 3,
the files a player's client sends to the host with the orders for one
turn.

Main Components
---------------
- **trn**: Turn file codec
    Parses plain, Winplan, and Taccom-wrapped turns; adds and deletes
    commands and attachments; rebuilds files with valid checksums

- **config**: Settings (character set, Winplan sub-version, limits)

- **cli**: Command-line tool (trntool)
    Lists, validates, sorts, and edits turn files

Quick Start
-----------
Read a turn:
    >>> from trnkit import TurnFile
    >>> trn = TurnFile.from_file("player3.trn")
    >>> print(trn.get_player(), trn.get_num_commands())

Or use the command-line tool:
    $ trntool dump player3.trn
    $ trntool validate player3.trn
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from trnkit.errors import (
    TrnError,
    TurnFileError,
    TurnFormatError,
    TurnTooShortError,
    TurnStateError,
    TaccomFullError,
    CommandIndexError,
    AttachmentIndexError,
)

from trnkit.trn import (
    TurnFile,
    TurnState,
    TurnDumper,
    Timestamp,
    Feature,
    CommandType,
    CommandCode,
    RegistrationKey,
)

from trnkit.config import TurnConfig

__all__ = [
    # Version info
    "__version__",
    # Exception hierarchy
    "TrnError",
    "TurnFileError",
    "TurnFormatError",
    "TurnTooShortError",
    "TurnStateError",
    "TaccomFullError",
    "CommandIndexError",
    "AttachmentIndexError",
    # Configuration
    "TurnConfig",
    # Turn files
    "TurnFile",
    "TurnState",
    "TurnDumper",
    "Timestamp",
    "Feature",
    "CommandType",
    "CommandCode",
    "RegistrationKey",
]
