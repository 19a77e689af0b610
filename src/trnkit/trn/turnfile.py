"""
Turn File
=========

This module provides the TurnFile class, which reads, modifies, and
writes VGA Planets v3 turn files.

A TurnFile owns one byte buffer holding the complete file image and a
parallel list of command positions into that buffer. Structured views
(header, trailers, Taccom directory) are kept as objects and written
back into a fresh buffer by update().

Lifecycle
---------
    FRESH   created with TurnFile(player, timestamp); nothing built yet
    PARSED  loaded from a file; buffer and checksums as read
    DIRTY   modified since it was loaded or last updated
    CLEAN   rebuilt by update(); checksums valid

Every modification makes the turn DIRTY. update() is the only way back
to CLEAN; write() and compute_turn_checksum() refuse to work on a
FRESH or DIRTY turn.

Usage Examples
--------------
Creating a turn:
    >>> from trnkit.trn import TurnFile, Timestamp, CommandCode
    >>> trn = TurnFile(3, Timestamp.from_string("12-24-200613:04:55"))
    >>> trn.add_command(CommandCode.SHIP_CHANGE_MISSION, 7, b"\\x02\\x00")
    >>> trn.update()
    >>> trn.write_file("player3.trn")

Reading a turn:
    >>> trn = TurnFile.from_file("player3.trn")
    >>> for i in range(trn.get_num_commands()):
    ...     print(trn.get_command_name(i), trn.get_command_id(i))
"""

from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional, Union
import bisect
import io
import logging
import os
import struct

from trnkit.config import TurnConfig
from trnkit.errors import (
    AttachmentIndexError,
    CommandIndexError,
    TaccomFullError,
    TrnError,
    TurnFormatError,
    TurnStateError,
    TurnTooShortError,
)
from trnkit.trn import commands, taccom
from trnkit.trn.checksum import compute_time_checksum, compute_turn_checksum
from trnkit.trn.commands import CommandCode
from trnkit.trn.registration import (
    RegistrationKey,
    encode_registration,
    try_recover_turn_number,
)
from trnkit.trn.structures import (
    DOS_SIGNATURE,
    MAX_ATTACHMENTS,
    NUM_PLAYERS,
    TACCOM_MAGIC,
    CommandType,
    DosTrailer,
    Feature,
    TaccomHeader,
    Timestamp,
    TurnHeader,
    WindowsTrailer,
    unpack_fixed_string,
)

logger = logging.getLogger(__name__)


class TurnState(Enum):
    """Consistency state of a TurnFile."""
    FRESH = "fresh"
    PARSED = "parsed"
    DIRTY = "dirty"
    CLEAN = "clean"


# Smallest possible turn: header plus DOS trailer
_MIN_TURN_SIZE = TurnHeader.SIZE + DosTrailer.SIZE


class TurnFile:
    """
    A VGA Planets v3 turn file.

    Attributes:
        config: Settings used for this turn
        charset: Codec for strings stored in the file
        source: Name of the file this turn was read from, if any
        header: Turn header
        dos_trailer: DOS trailer (always present)
        windows_trailer: Windows trailer, None unless the WINPLAN feature is on
        taccom_header: Taccom directory, None unless the TACCOM feature is on
    """

    def __init__(self, player: int, timestamp: Timestamp,
                 charset: Optional[str] = None, config: Optional[TurnConfig] = None):
        """
        Create a new, empty turn.

        Args:
            player: Player number
            timestamp: Timestamp of the result file this turn answers
            charset: Codec for strings; defaults to the configured charset
            config: Settings; defaults to TurnConfig()

        Raises:
            ValueError: If player does not fit the 16-bit header field
        """
        if not -0x8000 <= player <= 0x7FFF:
            raise ValueError(f"Player number must fit in 16 bits, got {player}")
        self.config = config or TurnConfig()
        self.charset = charset or self.config.charset
        self.source: Optional[str] = None

        self.header = TurnHeader(player_id=player, timestamp=timestamp)
        self.dos_trailer = DosTrailer()
        self.windows_trailer: Optional[WindowsTrailer] = None
        self.taccom_header: Optional[TaccomHeader] = None
        if Feature.WINPLAN in self.config.default_features:
            self.windows_trailer = WindowsTrailer()
        if Feature.TACCOM in self.config.default_features:
            self.taccom_header = TaccomHeader()

        self._version = self.config.default_version
        self._data = bytearray()
        self._offsets: list[int] = []
        self._turn_placement = 0
        self._state = TurnState.FRESH

    # =========================================================================
    # Construction from Files
    # =========================================================================

    @classmethod
    def from_stream(cls, stream: BinaryIO, full_parse: bool = True,
                    charset: Optional[str] = None, config: Optional[TurnConfig] = None,
                    source: Optional[str] = None) -> "TurnFile":
        """
        Read a turn from a binary stream.

        Args:
            stream: Seekable binary stream positioned at the file start
            full_parse: True to load commands and attachments; False to
                read only the header and trailers (the result is DIRTY
                and has no commands)
            charset: Codec for strings
            config: Settings
            source: Name for error messages; defaults to stream.name

        Returns:
            The parsed turn

        Raises:
            TurnFormatError: If the file is not a valid turn file
            TurnTooShortError: If the file is truncated
        """
        turn = cls(0, Timestamp(), charset, config)
        turn.windows_trailer = None
        turn.taccom_header = None
        turn.source = source or getattr(stream, "name", None)
        try:
            if full_parse:
                turn._load(stream)
            else:
                turn._load_headers(stream)
        except TrnError as e:
            logger.error(f"Failed to parse turn: {e}")
            raise
        except (struct.error, ValueError, OSError) as e:
            logger.error(f"Unexpected error parsing turn: {e}")
            raise TurnFormatError(f"invalid file format ({e})", turn.source) from e
        return turn

    @classmethod
    def from_bytes(cls, data: bytes, full_parse: bool = True,
                   charset: Optional[str] = None, config: Optional[TurnConfig] = None) -> "TurnFile":
        """Read a turn from its file content."""
        return cls.from_stream(io.BytesIO(data), full_parse, charset, config, source="<bytes>")

    @classmethod
    def from_file(cls, filepath: Union[str, Path], full_parse: bool = True,
                  charset: Optional[str] = None, config: Optional[TurnConfig] = None) -> "TurnFile":
        """
        Read a turn file from disk.

        Raises:
            FileNotFoundError: If the file doesn't exist
            TurnFormatError: If the file cannot be parsed
        """
        filepath = Path(filepath)
        with filepath.open("rb") as stream:
            return cls.from_stream(stream, full_parse, charset, config, source=str(filepath))

    def _load(self, stream: BinaryIO) -> None:
        """Load a complete file, plain or Taccom-wrapped."""
        self._data = bytearray(stream.read())
        data = self._data

        if len(data) > TaccomHeader.SIZE and data.startswith(TACCOM_MAGIC):
            self.taccom_header = TaccomHeader.from_bytes(bytes(data[:TaccomHeader.SIZE]))
            offset, length = taccom.locate_turn_body(self.taccom_header)
            logger.debug(f"Taccom container, turn at {offset}, {length} bytes")
            self._parse_turn(offset, length)
            taccom.validate_ranges(self.taccom_header, len(data), self.source)
            self._turn_placement = taccom.compute_turn_placement(self.taccom_header)
        else:
            self._parse_turn(0, len(data))

        self._state = TurnState.PARSED
        logger.debug(f"Parsed turn for player {self.get_player()}: "
                     f"{len(self._offsets)} commands, features {self.get_features()!r}")

    def _check_range(self, offset: int, length: int) -> None:
        """Verify that a zero-based range lies within the buffer."""
        size = len(self._data)
        if offset < 0 or length < 0 or offset > size or length > size - offset:
            raise TurnFormatError("invalid file format (bad pointer)", self.source)

    def _parse_turn(self, offset: int, length: int) -> None:
        """
        Parse the turn body.

        Args:
            offset: Zero-based position of the turn body in the buffer
            length: Size of the turn body
        """
        self._check_range(offset, length)
        if length < _MIN_TURN_SIZE:
            raise TurnTooShortError(source=self.source)

        data = self._data
        self.header = TurnHeader.from_bytes(bytes(data[offset:offset + TurnHeader.SIZE]))
        count = self.header.num_commands
        if count < 0 or count > self.config.max_commands:
            raise TurnFormatError("invalid file format (invalid command count)", self.source)
        if length < TurnHeader.SIZE + (count != 0) + 4 * count + DosTrailer.SIZE:
            raise TurnTooShortError(source=self.source)

        # Command directory: one zero byte, then 1-based pointers
        directory = offset + TurnHeader.SIZE + 1
        pointers = struct.unpack_from(f"<{count}i", data, directory) if count else ()
        self._offsets = [offset + pointer - 1 for pointer in pointers]

        extents = []
        for index, position in enumerate(self._offsets):
            # Every command has at least code and Id
            self._check_range(position, 4)
            code = commands.decode_code(data, position)
            if code == CommandCode.SEND_BACK:
                self._check_range(position, 8)
            size = commands.compute_length(code, data, position)
            if size is not None:
                self._check_range(position, size + 4)
                extents.append((position, position + size + 4, index))
            else:
                extents.append((position, position + 4, index))
        self._check_overlaps(extents)

        # Trailers
        self.windows_trailer = None
        if length >= DosTrailer.SIZE + WindowsTrailer.SIZE + TurnHeader.SIZE:
            start = offset + length - DosTrailer.SIZE - WindowsTrailer.SIZE
            self._accept_windows_trailer(
                WindowsTrailer.from_bytes(bytes(data[start:start + WindowsTrailer.SIZE])))
        start = offset + length - DosTrailer.SIZE
        self.dos_trailer = DosTrailer.from_bytes(bytes(data[start:start + DosTrailer.SIZE]))

    def _check_overlaps(self, extents: list[tuple[int, int, int]]) -> None:
        """Reject command records that share bytes."""
        previous_end = None
        previous_index = None
        for start, end, index in sorted(extents):
            if previous_end is not None and start < previous_end:
                raise TurnFormatError(
                    f"invalid file format (command {index + 1} overlaps command {previous_index + 1})",
                    self.source,
                )
            previous_end, previous_index = end, index

    def _accept_windows_trailer(self, trailer: WindowsTrailer) -> None:
        """Keep a Windows trailer candidate if it carries the magic."""
        if trailer.has_valid_magic():
            self.windows_trailer = trailer
            version = trailer.get_version()
            if version is not None:
                self._version = version

    def _load_headers(self, stream: BinaryIO) -> None:
        """Read header and trailers only, directly from the stream."""
        size = stream.seek(0, os.SEEK_END)
        stream.seek(0)
        probe = stream.read(TaccomHeader.SIZE)
        if len(probe) < TaccomHeader.SIZE:
            raise TurnTooShortError(source=self.source)

        if probe.startswith(TACCOM_MAGIC):
            offset, length = taccom.locate_turn_body(TaccomHeader.from_bytes(probe))
        else:
            offset, length = 0, size
        if offset < 0 or offset >= size or length > size - offset or length < _MIN_TURN_SIZE:
            raise TurnTooShortError(source=self.source)

        stream.seek(offset)
        self.header = TurnHeader.from_bytes(stream.read(TurnHeader.SIZE))
        stream.seek(offset + length - DosTrailer.SIZE)
        self.dos_trailer = DosTrailer.from_bytes(stream.read(DosTrailer.SIZE))
        if length > TurnHeader.SIZE + DosTrailer.SIZE + WindowsTrailer.SIZE:
            stream.seek(offset + length - DosTrailer.SIZE - WindowsTrailer.SIZE)
            self._accept_windows_trailer(WindowsTrailer.from_bytes(stream.read(WindowsTrailer.SIZE)))

        self._state = TurnState.DIRTY
        logger.debug(f"Read turn headers for player {self.get_player()}")

    # =========================================================================
    # General Information
    # =========================================================================

    @property
    def state(self) -> TurnState:
        return self._state

    def is_dirty(self) -> bool:
        """Check whether update() is needed before writing."""
        return self._state in (TurnState.FRESH, TurnState.DIRTY)

    def _mark_dirty(self) -> None:
        self._state = TurnState.DIRTY

    def get_player(self) -> int:
        return self.header.player_id

    def get_timestamp(self) -> Timestamp:
        return self.header.timestamp

    def get_features(self) -> Feature:
        """Get the optional parts present in this turn."""
        features = Feature.NONE
        if self.windows_trailer is not None:
            features |= Feature.WINPLAN
        if self.taccom_header is not None:
            features |= Feature.TACCOM
        return features

    def get_version(self) -> int:
        """Get the Winplan sub-version (the "xx" of "VER3.5xx")."""
        return self._version

    def set_timestamp(self, timestamp: Timestamp) -> None:
        self.header.timestamp = timestamp
        self._mark_dirty()

    def set_version(self, version: int) -> None:
        if not 0 <= version <= 99:
            raise ValueError(f"Sub-version must be 0..99, got {version}")
        self._version = version
        self._mark_dirty()

    def set_features(self, features: Feature) -> None:
        """
        Select the optional parts of the turn.

        Dropping a feature discards its structure (Windows trailer or
        Taccom directory); enabling one starts with an empty structure.
        """
        if features == self.get_features():
            return
        self._mark_dirty()
        if Feature.TACCOM in features:
            if self.taccom_header is None:
                self.taccom_header = TaccomHeader()
        else:
            self.taccom_header = None
            self._turn_placement = 0
        if Feature.WINPLAN in features:
            if self.windows_trailer is None:
                self.windows_trailer = WindowsTrailer()
        else:
            self.windows_trailer = None

    # =========================================================================
    # Trailer Access
    # =========================================================================

    def try_get_turn_nr(self) -> int:
        """
        Get the turn number this file was made for.

        Returns:
            Turn number, or 0 if unknown (no Windows trailer, or an
            unrecognised fingerprint)
        """
        if self.windows_trailer is None:
            return 0
        return try_recover_turn_number(self.windows_trailer)

    def set_player_secret(self, words: list[int]) -> None:
        """
        Set the player secret ("templock"/playerlog) words.

        This does not make the turn dirty; call update_trailer() to
        store it in a clean turn.
        """
        if len(words) != NUM_PLAYERS:
            raise ValueError(f"Player secret needs {NUM_PLAYERS} words, got {len(words)}")
        self.dos_trailer.player_secret = list(words)

    def set_registration_key(self, key: RegistrationKey, turn_number: int) -> None:
        """
        Store a registration key in the trailers.

        The DOS trailer receives the key words; with the WINPLAN
        feature the Windows trailer receives the display lines and the
        turn number fingerprint.
        """
        self.dos_trailer.registration_key = list(key.words)
        if self.windows_trailer is not None:
            encode_registration(key, self.get_player(), turn_number, self.windows_trailer, self.charset)
        self._mark_dirty()

    # =========================================================================
    # Command Access
    # =========================================================================

    def get_num_commands(self) -> int:
        return len(self._offsets)

    def _position(self, index: int) -> Optional[int]:
        """Get the buffer position of a command, None if index or position is invalid."""
        if 0 <= index < len(self._offsets):
            position = self._offsets[index]
            if 0 <= position and position + 4 <= len(self._data):
                return position
        return None

    def get_command_code(self, index: int) -> Optional[int]:
        position = self._position(index)
        if position is None:
            return None
        return commands.decode_code(self._data, position)

    def get_command_id(self, index: int) -> Optional[int]:
        position = self._position(index)
        if position is None:
            return None
        return commands.decode_id(self._data, position)

    def get_command_type(self, index: int) -> Optional[CommandType]:
        code = self.get_command_code(index)
        if code is None:
            return None
        return commands.get_command_code_type(code)

    def get_command_name(self, index: int) -> Optional[str]:
        code = self.get_command_code(index)
        if code is None:
            return None
        return commands.get_command_code_name(code)

    def get_command_position(self, index: int) -> Optional[int]:
        """Get the zero-based position of a command in the file image."""
        if 0 <= index < len(self._offsets):
            return self._offsets[index]
        return None

    def get_command_length(self, index: int) -> Optional[int]:
        """
        Get the payload length of a command.

        Returns:
            Length excluding code and Id words, or None if unknown
        """
        position = self._position(index)
        if position is None:
            return None
        code = commands.decode_code(self._data, position)
        if code == CommandCode.SEND_BACK and position + 8 > len(self._data):
            return None
        return commands.compute_length(code, self._data, position)

    def get_command_data(self, index: int) -> bytes:
        """
        Get the payload of a command.

        If the length is unknown, everything up to the end of the file
        image is returned. An invalid index yields empty data.
        """
        position = self._position(index)
        if position is None:
            return b""
        length = self.get_command_length(index)
        if length is None:
            return bytes(self._data[position + 4:])
        return bytes(self._data[position + 4:position + 4 + max(length, 0)])

    def find_command_run_length(self, index: int) -> int:
        """
        Count consecutive commands for the same object, starting at index.

        Returns:
            Number of commands with the same type and Id, 0 if index is invalid
        """
        start_type = self.get_command_type(index)
        start_id = self.get_command_id(index)
        if start_type is None or start_id is None:
            return 0
        run_length = 1
        while (self.get_command_type(index + run_length) == start_type
               and self.get_command_id(index + run_length) == start_id):
            run_length += 1
        return run_length

    # =========================================================================
    # Command Modification
    # =========================================================================

    def add_command(self, code: int, command_id: int, data: bytes = b"") -> None:
        """
        Append a command.

        Args:
            code: Command code
            command_id: Id field (object Id for most commands)
            data: Payload; further payload can follow with add_data()
        """
        self._offsets.append(len(self._data))
        self.add_data(commands.encode_command(code, command_id, data))

    def add_data(self, data: bytes) -> None:
        """Append payload bytes to the most recent command."""
        self._data.extend(data)
        self._mark_dirty()

    def delete_command(self, index: int) -> None:
        """
        Delete a command.

        The command stays in the list with code 0 and disappears with
        the next update().

        Raises:
            CommandIndexError: If index is out of range
        """
        position = self._position(index)
        if position is None:
            raise CommandIndexError(index, len(self._offsets))
        struct.pack_into("<h", self._data, position, 0)
        self._mark_dirty()

    def send_message_data(self, sender: int, receiver: int, data: bytes) -> None:
        """
        Add a SendMessage command with pre-encoded text.

        Args:
            sender: Sending player
            receiver: Receiving player; 0 means the host (12)
            data: Encoded message text
        """
        header = struct.pack("<hh", sender, 12 if receiver == 0 else receiver)
        self.add_command(CommandCode.SEND_MESSAGE, len(data), header)
        self.add_data(data)

    def send_message(self, sender: int, receiver: int, text: str) -> None:
        """Add a SendMessage command; lines of text become message lines."""
        self.send_message_data(sender, receiver, commands.encode_message_text(text, self.charset))

    def send_thost_allies(self, sequence: str, ship_id: int, ship_fc: str) -> None:
        """
        Add THost alliance commands.

        THost reads alliance changes from consecutive friendly code
        changes of one ship. The sequence is sent in 3-character
        pieces, then the ship's real friendly code is restored.
        """
        encoded = sequence.encode(self.charset, errors="replace")
        for start in range(0, len(encoded), 3):
            chunk = encoded[start:start + 3].ljust(3, b"\0")
            self.add_command(CommandCode.SHIP_CHANGE_FC, ship_id, chunk)
        fcode = ship_fc.encode(self.charset, errors="replace")[:3].ljust(3, b"\0")
        self.add_command(CommandCode.SHIP_CHANGE_FC, ship_id, fcode)

    def sort_commands(self) -> None:
        """
        Bring commands into canonical order.

        Only positions are reordered; the turn stays in its state.
        """
        self._offsets.sort(key=lambda position: commands.command_sort_key(self._data, position))

    # =========================================================================
    # Taccom Access
    # =========================================================================

    def add_file(self, data: bytes, name: str) -> int:
        """
        Attach a file. Enables the TACCOM feature.

        Returns:
            Slot index of the new attachment

        Raises:
            ValueError: If the name is blank (a blank name marks a free slot)
            TaccomFullError: If all slots are in use
        """
        encoded = name.encode(self.charset, errors="replace")
        if not unpack_fixed_string(encoded[:taccom.ATTACHMENT_NAME_SIZE]):
            raise ValueError(f"Attachment name must not be blank, got {name!r}")
        header = self.taccom_header if self.taccom_header is not None else TaccomHeader()
        index = taccom.add_file(header, len(self._data) + 1, len(data), encoded)
        if index is None:
            raise TaccomFullError(MAX_ATTACHMENTS)
        self.taccom_header = header
        self._data.extend(data)
        self._mark_dirty()
        logger.debug(f"Attached {name!r} ({len(data)} bytes) in slot {index}")
        return index

    def delete_file(self, index: int) -> None:
        """
        Remove an attachment.

        Raises:
            AttachmentIndexError: If index is not a valid slot
        """
        if not 0 <= index < MAX_ATTACHMENTS:
            raise AttachmentIndexError(index, MAX_ATTACHMENTS)
        if self.taccom_header is not None:
            taccom.remove_file(self.taccom_header, index)
        self._mark_dirty()

    def get_num_files(self) -> int:
        if self.taccom_header is None:
            return 0
        return taccom.count_files(self.taccom_header)

    def get_taccom_turn_placement(self) -> int:
        """Get the slot index the turn body is placed in front of."""
        return self._turn_placement

    def get_file_name(self, index: int) -> Optional[str]:
        """Get an attachment's name, None for an invalid index or empty slot."""
        if self.taccom_header is None or not 0 <= index < MAX_ATTACHMENTS:
            return None
        attachment = self.taccom_header.attachments[index]
        if attachment.is_empty():
            return None
        return unpack_fixed_string(attachment.name).decode(self.charset, errors="replace")

    def get_file_data(self, index: int) -> Optional[bytes]:
        """Get an attachment's content, None for an invalid index or empty slot."""
        if self.get_file_name(index) is None:
            return None
        attachment = self.taccom_header.attachments[index]
        start = attachment.address - 1
        return bytes(self._data[start:start + attachment.length])

    # =========================================================================
    # Rebuilding
    # =========================================================================

    def update(self) -> None:
        """
        Rebuild the file image.

        Drops deleted and undefined commands, regenerates header,
        command directory, trailers, and checksums, and re-wraps the
        Taccom container if that feature is on.
        """
        kept = [position for index, position in enumerate(self._offsets)
                if self.get_command_type(index) not in (None, CommandType.UNDEFINED)]
        if len(kept) != len(self._offsets):
            logger.debug(f"Dropping {len(self._offsets) - len(kept)} undefined commands")
            self._offsets = kept

        new_offsets: list[int] = []

        def emit_turn(buffer: bytearray) -> None:
            self._build_turn_body(buffer, new_offsets)

        if self.taccom_header is not None:
            new_data, self.taccom_header = taccom.build_container(
                self.taccom_header, self._turn_placement, bytes(self._data), emit_turn)
        else:
            new_data = bytearray()
            emit_turn(new_data)

        self._data = new_data
        self._offsets = new_offsets
        self._state = TurnState.CLEAN
        logger.debug(f"Rebuilt turn: {len(self._data)} bytes, {len(self._offsets)} commands")

    def _build_turn_body(self, out: bytearray, new_offsets: list[int]) -> None:
        """Append the turn body to out, recording new command positions."""
        self.header.time_checksum = compute_time_checksum(self.header.timestamp.raw)
        self.header.num_commands = len(self._offsets)
        self.header.unused = 0

        start = len(out)
        out.extend(self.header.to_bytes())
        if self._offsets:
            out.append(0)
            directory = len(out)
            out.extend(bytes(4 * len(self._offsets)))
            boundaries = self._record_boundaries()
            for index, position in enumerate(self._offsets):
                length = max(self.get_command_length(index) or 0, 0)
                # A short payload ends where the next record begins
                limit = boundaries[bisect.bisect_right(boundaries, position)]
                end = min(position + length + 4, limit)
                record = bytes(self._data[position:end]).ljust(length + 4, b"\0")
                new_offsets.append(len(out))
                struct.pack_into("<i", out, directory + 4 * index, len(out) - start + 1)
                out.extend(record)

        if self.windows_trailer is not None:
            self.windows_trailer.set_version(self._version)
            out.extend(self.windows_trailer.to_bytes())

        self.dos_trailer.checksum = compute_turn_checksum(bytes(out[start:]), self.header.time_checksum)
        self.dos_trailer.signature = DOS_SIGNATURE
        out.extend(self.dos_trailer.to_bytes())

    def _record_boundaries(self) -> list[int]:
        """Sorted start positions of all records and attachments, plus the buffer end."""
        starts = set(self._offsets)
        if self.taccom_header is not None:
            starts.update(attachment.address - 1 for attachment in self.taccom_header.attachments
                          if not attachment.is_empty())
        starts.add(len(self._data))
        return sorted(starts)

    def _require_clean(self, operation: str) -> None:
        if self.is_dirty():
            raise TurnStateError(f"cannot {operation} a modified turn; call update() first", self.source)

    def _turn_area(self) -> tuple[int, int]:
        """Get (offset, length) of the turn body within the file image."""
        if self.taccom_header is not None:
            return taccom.locate_turn_body(self.taccom_header)
        return 0, len(self._data)

    def update_trailer(self) -> None:
        """
        Write the current DOS trailer into the file image.

        Used after set_player_secret() on a clean turn. The checksum
        field is written as it stands.

        Raises:
            TurnStateError: If the turn needs update()
        """
        self._require_clean("update the trailer of")
        offset, length = self._turn_area()
        start = offset + length - DosTrailer.SIZE
        self._data[start:start + DosTrailer.SIZE] = self.dos_trailer.to_bytes()

    def compute_turn_checksum(self) -> int:
        """
        Compute the turn checksum from the file image.

        Raises:
            TurnStateError: If the turn needs update()
        """
        self._require_clean("checksum")
        offset, length = self._turn_area()
        area = bytes(self._data[offset:offset + length - DosTrailer.SIZE])
        return compute_turn_checksum(area, self.header.time_checksum)

    # =========================================================================
    # Output
    # =========================================================================

    def to_bytes(self) -> bytes:
        """
        Get the file image.

        Raises:
            TurnStateError: If the turn needs update()
        """
        self._require_clean("write")
        return bytes(self._data)

    def write(self, stream: BinaryIO) -> None:
        """Write the file image to a binary stream."""
        stream.write(self.to_bytes())

    def write_file(self, filepath: Union[str, Path]) -> int:
        """
        Write the file image to disk.

        Returns:
            Number of bytes written
        """
        data = self.to_bytes()
        Path(filepath).write_bytes(data)
        logger.info(f"Wrote turn to {filepath} ({len(data)} bytes)")
        return len(data)
