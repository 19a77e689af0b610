"""
VGA Planets v3 Turn Files
=========================

This package reads, modifies, and writes turn files (TRN), the files
a player sends to the host containing their orders for one turn.

This package provides:
- **TurnFile**: Parse, modify, rebuild, and write turn files
- **TurnDumper**: Produce an "un-trn" style listing of a turn
- **Command table**: Codes, categories, and payload sizes of commands
- **RegistrationKey**: Registration data stored in the trailers
- **Checksum utilities**: Turn, timestamp, and registration checksums

Quick Start
-----------
Creating a turn:

    >>> from trnkit.trn import TurnFile, Timestamp, CommandCode
    >>> trn = TurnFile(3, Timestamp.from_string("12-24-200613:04:55"))
    >>> trn.add_command(CommandCode.SHIP_CHANGE_SPEED, 17, b"\\x09\\x00")
    >>> trn.update()
    >>> data = trn.to_bytes()

Listing a turn:

    >>> import sys
    >>> from trnkit.trn import TurnDumper
    >>> TurnDumper().dump(TurnFile.from_file("player3.trn"), sys.stdout)

File Variants
-------------
- **DOS**: header, commands, DOS trailer
- **Winplan**: additionally a Windows trailer before the DOS trailer
- **Taccom**: a turn wrapped in a container with up to 10 attachments
"""

# =============================================================================
# Public API Exports
# =============================================================================

from trnkit.trn.structures import (
    # Constants
    NUM_PLAYERS,
    MAX_ATTACHMENTS,
    DOS_SIGNATURE,
    # Enums
    Feature,
    CommandType,
    # Data structures
    Timestamp,
    TurnHeader,
    DosTrailer,
    WindowsTrailer,
    TaccomAttachment,
    TaccomHeader,
)

from trnkit.trn.commands import (
    CommandCode,
    CommandDefinition,
    COMMAND_DEFINITIONS,
    get_command_code_type,
    get_command_code_name,
    get_command_code_record_index,
    encode_message_text,
    decode_message_text,
)

from trnkit.trn.checksum import (
    byte_sum,
    compute_turn_checksum,
    describe_signature,
)

from trnkit.trn.registration import (
    MAGIC_NUMBERS,
    RandomNumberGenerator,
    RegistrationKey,
)

from trnkit.trn.turnfile import (
    TurnFile,
    TurnState,
)

from trnkit.trn.dumper import TurnDumper

__all__ = [
    "NUM_PLAYERS",
    "MAX_ATTACHMENTS",
    "DOS_SIGNATURE",
    "Feature",
    "CommandType",
    "Timestamp",
    "TurnHeader",
    "DosTrailer",
    "WindowsTrailer",
    "TaccomAttachment",
    "TaccomHeader",
    "CommandCode",
    "CommandDefinition",
    "COMMAND_DEFINITIONS",
    "get_command_code_type",
    "get_command_code_name",
    "get_command_code_record_index",
    "encode_message_text",
    "decode_message_text",
    "byte_sum",
    "compute_turn_checksum",
    "describe_signature",
    "MAGIC_NUMBERS",
    "RandomNumberGenerator",
    "RegistrationKey",
    "TurnFile",
    "TurnState",
    "TurnDumper",
]
