"""
trnkit Error Hierarchy
======================

This module defines the exception hierarchy for the whole package.
All exceptions inherit from TrnError, allowing callers to catch every
trnkit-related error with a single except clause if desired.

Exception Hierarchy
-------------------
TrnError (base)
└── TurnFileError (turn file handling)
    ├── TurnFormatError - invalid turn file structure
    │   └── TurnTooShortError - stream shorter than its structures require
    ├── TurnStateError - operation not allowed in the current state
    ├── TaccomFullError - no free attachment slot
    ├── CommandIndexError - command index out of range
    └── AttachmentIndexError - attachment slot index out of range

Design Philosophy
-----------------
Format errors are fatal and raised only while constructing a TurnFile:
an object either parses completely or does not exist. Misuse errors
(writing a dirty turn, deleting a command that does not exist) are
raised at the call site and leave the object unchanged.

Error messages follow this format:
    filename: error: description
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class TrnError(Exception):
    """
    Base exception for all trnkit errors.

        try:
            trn = TurnFile.from_file("player3.trn")
        except TrnError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Turn File Exceptions
# =============================================================================

class TurnFileError(TrnError):
    """
    Base exception for turn file handling errors.

    Attributes:
        message: The error description
        source: Name of the file or stream being processed (optional)
    """

    def __init__(self, message: str, source: Optional[str] = None):
        self.message = message
        self.source = source
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Prefix the message with the source name, if known."""
        if self.source:
            return f"{self.source}: error: {self.message}"
        return self.message


class TurnFormatError(TurnFileError):
    """
    Invalid turn file format.

    Raised when reading a turn file that has:
    - A command count outside the sane range
    - A command pointer outside the file
    - Overlapping command records
    - A Taccom directory entry pointing outside the file
    """
    pass


class TurnTooShortError(TurnFormatError):
    """
    Turn file is truncated.

    Raised when the stream is shorter than the minimum size required
    by the structures it claims to contain (header, command directory,
    trailers).
    """

    def __init__(self, message: str = "file too short", source: Optional[str] = None):
        super().__init__(message, source)


class TurnStateError(TurnFileError):
    """
    Operation not allowed in the current state.

    Raised when writing or checksumming a turn that has been modified
    since the last update() call.
    """
    pass


class TaccomFullError(TurnFileError):
    """
    All Taccom attachment slots are in use.

    A turn file can carry at most MAX_ATTACHMENTS attachments. Delete
    an attachment first to free a slot.
    """

    def __init__(self, capacity: int):
        self.capacity = capacity
        super().__init__(f"attachment table full ({capacity} slots in use)")


class CommandIndexError(TurnFileError, IndexError):
    """Command index out of range."""

    def __init__(self, index: int, count: int):
        self.index = index
        self.count = count
        super().__init__(f"command index {index} out of range (turn has {count} commands)")


class AttachmentIndexError(TurnFileError, IndexError):
    """Attachment slot index out of range."""

    def __init__(self, index: int, capacity: int):
        self.index = index
        self.capacity = capacity
        super().__init__(f"attachment slot {index} out of range (0..{capacity - 1})")
