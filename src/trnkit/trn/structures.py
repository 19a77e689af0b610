"""
Turn File Binary Structures
===========================

This module defines the fixed-size binary records of a VGA Planets v3
turn file (TRN). Host programs locate every field by fixed offset, so
each record is an explicit struct layout: little-endian, no padding.

Turn File Structure Overview
----------------------------
A plain turn file contains:
1. Turn Header (28 bytes): player, command count, timestamp, checksum
2. Command Directory (present if commands > 0):
   - One zero byte
   - Command pointers (4 bytes each, 1-based, relative to header start)
3. Command records (variable): code, Id, payload
4. Windows Trailer (316 bytes, Winplan turns only): "VER3.5xx" + reg info
5. DOS Trailer (256 bytes): checksum, signature, registration, templock

A Taccom-enhanced turn file wraps this in a container:
1. Taccom Header (218 bytes): magic "NCC1701AD9", turn position, directory
2. Turn data and attachment data, in any order

Record Layouts
--------------
**TurnHeader** (28 bytes):
    Offset  Size    Description
    ------  ----    -----------
    0       2       Player Id (signed)
    2       4       Number of commands
    6       18      Timestamp "MM-DD-YYYYHH:MM:SS"
    24      2       Unused
    26      2       Timestamp checksum (byte sum)

**TurnDosTrailer** (256 bytes):
    0       4       Turn checksum
    4       4       Signature of the program that wrote the file
    8       204     Registration key (51 words)
    212     44      Player secret "templock" (11 words)

**TurnWindowsTrailer** (316 bytes):
    0       8       "VER3.5" + two-digit sub-version
    8       8       vphKey (2 words)
    16      50      Registration string 1 (cipher, pad)
    66      50      Registration string 2 (cipher, pad)
    116     50      Registration string 3 (player name)
    166     50      Registration string 4 (player address)
    216     100     Unused

**TaccomHeader** (218 bytes):
    0       10      "NCC1701AD9"
    10      4       Turn address (1-based)
    14      4       Turn size
    18      200     10 attachment slots: address(4), length(4), name(12)
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum, IntFlag
from typing import ClassVar
import struct


# =============================================================================
# Constants
# =============================================================================

NUM_PLAYERS = 11                # Players in a standard game
TIMESTAMP_SIZE = 18             # "MM-DD-YYYYHH:MM:SS"
REGISTRATION_KEY_WORDS = 51     # 25 + 25 character words plus a sum word
MAX_ATTACHMENTS = 10            # Taccom attachment slots

TACCOM_MAGIC = b"NCC1701AD9"
WINPLAN_MAGIC = b"VER3.5"

# Signature written into the DOS trailer by this implementation
DOS_SIGNATURE = 0x474E3243


# =============================================================================
# Enumeration Types
# =============================================================================

class Feature(IntFlag):
    """Optional parts of a turn file."""
    NONE = 0
    WINPLAN = 0x01          # File contains a Windows trailer
    TACCOM = 0x02           # File is wrapped in a Taccom container


class CommandType(IntEnum):
    """
    High-level classification of turn commands.

    The numeric order is the canonical sort order of command groups;
    undefined commands sort first.
    """
    UNDEFINED = 0           # Command not known to us
    SHIP = 1                # Ship command, Id is the ship Id
    PLANET = 2              # Planet command, Id is the planet Id
    BASE = 3                # Starbase command, Id is the base Id
    OTHER = 4               # Message, password, sendback

    def get_description(self) -> str:
        """Get a human-readable description of the command type."""
        return self.name.capitalize()


# =============================================================================
# Fixed Strings
# =============================================================================

def pack_fixed_string(data: bytes, size: int) -> bytes:
    """
    Pack encoded text into a fixed-size field.

    Text longer than the field is truncated; shorter text is padded
    with spaces, as the DOS programs do.
    """
    return data[:size].ljust(size, b" ")


def unpack_fixed_string(data: bytes) -> bytes:
    """Strip the padding (spaces and NULs) from a fixed-size field."""
    return bytes(data).rstrip(b" \0")


# =============================================================================
# Timestamp
# =============================================================================

@dataclass(frozen=True)
class Timestamp:
    """
    Turn timestamp: 18 opaque bytes, normally "MM-DD-YYYYHH:MM:SS".

    Timestamps are compared byte-wise; the content is not interpreted
    except for display.
    """
    raw: bytes = bytes(TIMESTAMP_SIZE)

    def __post_init__(self) -> None:
        if len(self.raw) != TIMESTAMP_SIZE:
            raise ValueError(f"Timestamp must be {TIMESTAMP_SIZE} bytes, got {len(self.raw)}")
        object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def from_string(cls, text: str) -> "Timestamp":
        """Create a timestamp from its text form, e.g. "12-24-200613:04:55"."""
        return cls(text.encode("ascii"))

    @classmethod
    def from_datetime(cls, value: datetime) -> "Timestamp":
        """Create a timestamp from a datetime."""
        return cls.from_string(value.strftime("%m-%d-%Y%H:%M:%S"))

    def get_checksum(self) -> int:
        """Byte sum over the timestamp, as stored in the turn header."""
        return sum(self.raw)

    def __str__(self) -> str:
        return self.raw.decode("latin-1")


# =============================================================================
# Turn Header
# =============================================================================

@dataclass
class TurnHeader:
    """Turn header, 28 bytes at the start of the turn data."""
    player_id: int = 0
    num_commands: int = 0
    timestamp: Timestamp = field(default_factory=Timestamp)
    unused: int = 0
    time_checksum: int = 0

    FORMAT: ClassVar[str] = "<hi18shh"
    SIZE: ClassVar[int] = 28

    def to_bytes(self) -> bytes:
        """Serialize the header to 28 bytes."""
        return struct.pack(
            self.FORMAT,
            self.player_id,
            self.num_commands,
            self.timestamp.raw,
            self.unused,
            self.time_checksum,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "TurnHeader":
        """Deserialize a header from the first 28 bytes of data."""
        if len(data) < cls.SIZE:
            raise ValueError(f"Header too short: need {cls.SIZE} bytes, got {len(data)}")
        player_id, num_commands, timestamp, unused, time_checksum = \
            struct.unpack_from(cls.FORMAT, data)
        return cls(
            player_id=player_id,
            num_commands=num_commands,
            timestamp=Timestamp(timestamp),
            unused=unused,
            time_checksum=time_checksum,
        )


# =============================================================================
# Trailers
# =============================================================================

@dataclass
class DosTrailer:
    """DOS (v3.0) trailer, 256 bytes at the end of the turn data. Always present."""
    checksum: int = 0
    signature: int = 0
    registration_key: list[int] = field(default_factory=lambda: [0] * REGISTRATION_KEY_WORDS)
    player_secret: list[int] = field(default_factory=lambda: [0] * NUM_PLAYERS)

    FORMAT: ClassVar[str] = f"<II{REGISTRATION_KEY_WORDS}I{NUM_PLAYERS}I"
    SIZE: ClassVar[int] = 256

    def to_bytes(self) -> bytes:
        """Serialize the trailer to 256 bytes."""
        return struct.pack(
            self.FORMAT,
            self.checksum & 0xFFFFFFFF,
            self.signature & 0xFFFFFFFF,
            *(w & 0xFFFFFFFF for w in self.registration_key),
            *(w & 0xFFFFFFFF for w in self.player_secret),
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "DosTrailer":
        """Deserialize a trailer from the first 256 bytes of data."""
        if len(data) < cls.SIZE:
            raise ValueError(f"DOS trailer too short: need {cls.SIZE} bytes, got {len(data)}")
        values = struct.unpack_from(cls.FORMAT, data)
        key_end = 2 + REGISTRATION_KEY_WORDS
        return cls(
            checksum=values[0],
            signature=values[1],
            registration_key=list(values[2:key_end]),
            player_secret=list(values[key_end:]),
        )


@dataclass
class WindowsTrailer:
    """
    Windows (v3.5) trailer, 316 bytes directly before the DOS trailer.

    Registration strings 1 and 2 are stored as (cipher, pad) pairs; the
    plaintext is cipher XOR pad. Strings 3 and 4 are stored in the clear.
    """
    magic: bytes = bytes(8)
    vph_key: list[int] = field(default_factory=lambda: [0, 0])
    regstr1: list[bytes] = field(default_factory=lambda: [bytes(25), bytes(25)])
    regstr2: list[bytes] = field(default_factory=lambda: [bytes(25), bytes(25)])
    regstr3: bytes = bytes(50)
    regstr4: bytes = bytes(50)
    unused: bytes = bytes(100)

    FORMAT: ClassVar[str] = "<8s2I25s25s25s25s50s50s100s"
    SIZE: ClassVar[int] = 316

    def has_valid_magic(self) -> bool:
        """Check for the "VER3.5" signature."""
        return self.magic[:6] == WINPLAN_MAGIC

    def get_version(self) -> int | None:
        """Get the sub-version ("xx" in "VER3.5xx"), None if not two digits."""
        digits = self.magic[6:8]
        if len(digits) == 2 and all(0x30 <= b <= 0x39 for b in digits):
            return int(digits.decode("ascii"))
        return None

    def set_version(self, version: int) -> None:
        """Write the magic for the given sub-version."""
        self.magic = WINPLAN_MAGIC + f"{version % 100:02d}".encode("ascii")

    def to_bytes(self) -> bytes:
        """Serialize the trailer to 316 bytes."""
        return struct.pack(
            self.FORMAT,
            self.magic,
            self.vph_key[0] & 0xFFFFFFFF,
            self.vph_key[1] & 0xFFFFFFFF,
            self.regstr1[0],
            self.regstr1[1],
            self.regstr2[0],
            self.regstr2[1],
            self.regstr3,
            self.regstr4,
            self.unused,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "WindowsTrailer":
        """Deserialize a trailer from the first 316 bytes of data."""
        if len(data) < cls.SIZE:
            raise ValueError(f"Windows trailer too short: need {cls.SIZE} bytes, got {len(data)}")
        (magic, vph0, vph1, r1a, r1b, r2a, r2b,
         regstr3, regstr4, unused) = struct.unpack_from(cls.FORMAT, data)
        return cls(
            magic=magic,
            vph_key=[vph0, vph1],
            regstr1=[r1a, r1b],
            regstr2=[r2a, r2b],
            regstr3=regstr3,
            regstr4=regstr4,
            unused=unused,
        )


# =============================================================================
# Taccom Container
# =============================================================================

@dataclass
class TaccomAttachment:
    """One attachment slot of the Taccom directory, 20 bytes."""
    address: int = 0            # 1-based file position
    length: int = 0
    name: bytes = bytes(12)     # empty (spaces/NULs) for an unused slot

    FORMAT: ClassVar[str] = "<ii12s"
    SIZE: ClassVar[int] = 20

    def is_empty(self) -> bool:
        """Check whether this slot is unused."""
        return not unpack_fixed_string(self.name)

    def to_bytes(self) -> bytes:
        return struct.pack(self.FORMAT, self.address, self.length, self.name)

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> "TaccomAttachment":
        address, length, name = struct.unpack_from(cls.FORMAT, data, offset)
        return cls(address=address, length=length, name=name)


@dataclass
class TaccomHeader:
    """Taccom container header, 218 bytes at the start of the file."""
    magic: bytes = TACCOM_MAGIC
    turn_address: int = 0       # 1-based file position of the turn data
    turn_size: int = 0
    attachments: list[TaccomAttachment] = field(
        default_factory=lambda: [TaccomAttachment() for _ in range(MAX_ATTACHMENTS)]
    )

    FORMAT: ClassVar[str] = "<10sii"
    SIZE: ClassVar[int] = 218

    def to_bytes(self) -> bytes:
        """Serialize the header to 218 bytes."""
        result = bytearray(struct.pack(self.FORMAT, self.magic, self.turn_address, self.turn_size))
        for attachment in self.attachments:
            result.extend(attachment.to_bytes())
        return bytes(result)

    @classmethod
    def from_bytes(cls, data: bytes) -> "TaccomHeader":
        """Deserialize a header from the first 218 bytes of data."""
        if len(data) < cls.SIZE:
            raise ValueError(f"Taccom header too short: need {cls.SIZE} bytes, got {len(data)}")
        magic, turn_address, turn_size = struct.unpack_from(cls.FORMAT, data)
        attachments = [
            TaccomAttachment.from_bytes(data, 18 + i * TaccomAttachment.SIZE)
            for i in range(MAX_ATTACHMENTS)
        ]
        return cls(
            magic=magic,
            turn_address=turn_address,
            turn_size=turn_size,
            attachments=attachments,
        )
