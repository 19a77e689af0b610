"""
Turn File Listing
=================

This module produces a human-readable listing of a turn file, in the
format of the traditional "un-trn" utility:

    ; Winplan trailer present, sub-version 1

    Player               = 3
    Commands             = 1
    Timestamp            = "12-24-200613:04:55"
    Time checksum        = 913               ; okay

    ShipChangeMission                        ; index 1, position 00000021
      Ship Id            = 7
      Mission            = 2

Values are aligned at column 20, comments at column 50. Comments can be
switched off, which makes the listing easier to compare.
"""

from collections.abc import Iterable, Iterator
from typing import Optional, TextIO

from trnkit.trn import commands
from trnkit.trn.checksum import (
    byte_sum,
    compute_registration_sum,
    describe_signature,
)
from trnkit.trn.commands import CommandCode
from trnkit.trn.registration import KEY_LINE_LENGTH, decode_key_line, decode_string_pair
from trnkit.trn.structures import CommandType, unpack_fixed_string
from trnkit.trn.turnfile import TurnFile


# Column of the "=" sign
ASSIGN_INDENT = 20

# Column of comments
COMMENT_INDENT = 50

# Hex dump limits
HEX_MAX_LINES = 16
HEX_BYTES_PER_LINE = 16

# SendBack type of a transferred file
SENDBACK_FILE = 34


def quote_string(value: str) -> str:
    """Quote a string, C-like."""
    result = ['"']
    for char in value:
        if char == "\n":
            result.append("\\n")
        elif char == "\r":
            result.append("\\r")
        elif char in "\\\"":
            result.append("\\" + char)
        elif ord(char) < 32:
            result.append(f"\\{ord(char):03o}")
        else:
            result.append(char)
    result.append('"')
    return "".join(result)


def format_hex(value: int) -> str:
    return f"{value & 0xFFFFFFFF:08X}"


class TurnDumper:
    """
    Formats a turn file as a listing.

    Attributes:
        show_comments: Append explanatory comments
        show_header: List header and Taccom directory
        show_trailer: List trailers
        verify_trailer_checksum: Recompute the turn checksum (needs a
            fully parsed turn)
        type_filter: If set, only list commands of these types
    """

    def __init__(self, show_comments: bool = True, show_header: bool = True,
                 show_trailer: bool = True, verify_trailer_checksum: bool = True,
                 type_filter: Optional[Iterable[CommandType]] = None):
        self.show_comments = show_comments
        self.show_header = show_header
        self.show_trailer = show_trailer
        self.verify_trailer_checksum = verify_trailer_checksum
        self.type_filter = set(type_filter) if type_filter is not None else None

    def accept(self, turn: TurnFile, index: int) -> bool:
        """Check whether a command passes the type filter."""
        if self.type_filter is None:
            return True
        return turn.get_command_type(index) in self.type_filter

    def dump(self, turn: TurnFile, output: TextIO) -> bool:
        """
        Write the listing to a text stream.

        Returns:
            True if at least one command was listed
        """
        matched = False
        for line, is_command in self._generate(turn):
            output.write(line + "\n")
            matched = matched or is_command
        return matched

    def iter_lines(self, turn: TurnFile) -> Iterator[str]:
        """Generate the listing line by line."""
        for line, _ in self._generate(turn):
            yield line

    def _generate(self, turn: TurnFile) -> Iterator[tuple[str, bool]]:
        newline = False
        if self.show_header:
            for line in self._show_header(turn):
                yield line, False
            newline = True

        for index in range(turn.get_num_commands()):
            if self.accept(turn, index):
                if newline:
                    yield "", False
                newline = True
                for line in self._show_command(turn, index):
                    yield line, True

        if self.show_trailer:
            if newline:
                yield "", False
            for line in self._show_trailer(turn):
                yield line, False

    # =========================================================================
    # Line Formatting
    # =========================================================================

    def _line(self, name: str, value: str = "", comment: str = "") -> Iterator[str]:
        output = name
        if value:
            output = output.ljust(ASSIGN_INDENT) + " = " + value
        if comment and self.show_comments:
            if len(output) >= COMMENT_INDENT - 2:
                yield output
                output = ""
            output = output.ljust(COMMENT_INDENT) + "; " + comment
        yield output

    def _value(self, name: str, value: int | str, comment: str = "") -> Iterator[str]:
        if isinstance(value, str):
            return self._line(name, quote_string(value), comment)
        return self._line(name, str(value), comment)

    def _hex(self, data: bytes) -> Iterator[str]:
        limit = HEX_MAX_LINES * HEX_BYTES_PER_LINE
        for start in range(0, min(len(data), limit), HEX_BYTES_PER_LINE):
            chunk = data[start:start + HEX_BYTES_PER_LINE]
            hex_text = ""
            char_text = ""
            for i in range(HEX_BYTES_PER_LINE):
                if i < len(chunk):
                    hex_text += f"{chunk[i]:02X}"
                    char_text += chr(chunk[i]) if 32 <= chunk[i] < 127 else "."
                else:
                    hex_text += "  "
                hex_text += " "
                if i == 7:
                    hex_text += " "
            yield f"  {start:08X}: {hex_text}{char_text}"
        if len(data) > limit:
            yield "; ...rest omitted"

    # =========================================================================
    # Header
    # =========================================================================

    def _show_taccom(self, turn: TurnFile) -> Iterator[str]:
        header = turn.taccom_header
        placement = turn.get_taccom_turn_placement()
        turn_line = f";   turn data, {header.turn_size} bytes, position {header.turn_address}"
        shown = False
        yield ";"
        yield "; Taccom-format Turn File Directory:"
        for index, attachment in enumerate(header.attachments):
            if index == placement:
                yield turn_line
                shown = True
            name = turn.get_file_name(index)
            if name is not None:
                yield f';   file "{name}", {attachment.length} bytes, position {attachment.address}'
        if not shown:
            yield turn_line

    def _show_header(self, turn: TurnFile) -> Iterator[str]:
        if turn.taccom_header is not None:
            yield "; Taccom file format"
        if turn.windows_trailer is not None:
            yield f"; Winplan trailer present, sub-version {turn.get_version()}"
        if turn.taccom_header is not None:
            yield from self._show_taccom(turn)
        yield ""
        yield from self._value("Player", turn.get_player())
        yield from self._value("Commands", turn.get_num_commands())
        yield from self._value("Timestamp", str(turn.get_timestamp()))

        stored = turn.header.time_checksum & 0xFFFF
        actual = byte_sum(turn.get_timestamp().raw)
        comment = "okay" if stored == actual else f"WRONG, should be {actual}"
        yield from self._value("Time checksum", stored, comment)

    # =========================================================================
    # Commands
    # =========================================================================

    def _show_command(self, turn: TurnFile, index: int) -> Iterator[str]:
        code = turn.get_command_code(index)
        command_type = turn.get_command_type(index)
        position = turn.get_command_position(index)
        if code is None or command_type is None or position is None:
            return
        location = f"index {index + 1}, position {position:08X}"

        name = turn.get_command_name(index)
        if name is None:
            yield from self._value("Command", code, location)
            yield "; Unknown command"
            return

        yield from self._line(name, "", location)
        command_id = turn.get_command_id(index)
        if command_type in (CommandType.SHIP, CommandType.PLANET, CommandType.BASE):
            yield from self._value(f"  {command_type.get_description()} Id", command_id)

        data = turn.get_command_data(index)
        if code == CommandCode.PLANET_BUILD_BASE:
            yield "; no data for this command"
        elif code == CommandCode.BASE_FIX_RECYCLE_SHIP:
            yield from self._show_fix_recycle(data)
        elif code == CommandCode.SEND_MESSAGE:
            yield from self._show_message(turn, command_id, data)
        elif code == CommandCode.CHANGE_PASSWORD:
            yield "; Intentionally not decoded."
        elif code == CommandCode.SEND_BACK:
            yield from self._show_send_back(turn, command_id, data)
        else:
            for label, value in commands.decode_payload(code, data, turn.charset):
                yield from self._value(f"  {label}", value)

        yield from self._check_position(turn, index, position)

    def _show_fix_recycle(self, data: bytes) -> Iterator[str]:
        fields = commands.decode_payload(CommandCode.BASE_FIX_RECYCLE_SHIP, data, "ascii")
        action = fields[0][1] if fields else 0
        comment = {0: "none", 1: "Fix", 2: "Recycle"}.get(action, "INVALID")
        yield from self._value("  Action", action, comment)

    def _show_message(self, turn: TurnFile, length: int, data: bytes) -> Iterator[str]:
        sender = int.from_bytes(data[0:2], "little", signed=True) if len(data) >= 2 else 0
        receiver = int.from_bytes(data[2:4], "little", signed=True) if len(data) >= 4 else 0
        yield from self._value("  From", sender)
        yield from self._value("  To", receiver)
        if length > 0:
            yield "  Text ="
            for line in commands.decode_message_text(data[4:4 + length], turn.charset):
                yield "    " + quote_string(line)
        else:
            yield from self._value("  Text", "", "missing/empty")

    def _show_send_back(self, turn: TurnFile, receiver: int, data: bytes) -> Iterator[str]:
        kind = int.from_bytes(data[0:2], "little") if len(data) >= 2 else 0
        size = int.from_bytes(data[2:4], "little") if len(data) >= 4 else 0
        yield from self._value("  Receiver", receiver)
        yield from self._value("  Type", kind)
        yield from self._value("  Size", size)
        body = data[4:4 + size]
        if kind == SENDBACK_FILE:
            name = unpack_fixed_string(body[:12]).decode(turn.charset, errors="replace")
            flags = body[12] if len(body) > 12 else 0
            yield from self._value("    File Name", name)
            yield from self._value("    File Size", size - 13)
            yield from self._value("    Flags", flags)
            yield from self._hex(body[13:])
        else:
            yield from self._hex(body)

    def _check_position(self, turn: TurnFile, index: int, position: int) -> Iterator[str]:
        """Diagnose gaps and overlaps between consecutive commands."""
        next_position = turn.get_command_position(index + 1)
        length = turn.get_command_length(index)
        if next_position is None or length is None:
            return
        length += 4
        end = position + length
        if end == next_position:
            return
        yield f"; WARNING: next command not at expected position {end:08X}"
        if end < next_position:
            yield f"; there's a {next_position - end} bytes gap"
        elif end - next_position < length:
            yield f"; there's a {end - next_position} bytes overlap between commands"
        else:
            yield "; this TRN is screwed."

    # =========================================================================
    # Trailer
    # =========================================================================

    def _show_trailer(self, turn: TurnFile) -> Iterator[str]:
        trailer = turn.windows_trailer
        if trailer is not None:
            yield "; Version 3.5 file format (Winplan)"
            yield f"; Sub-version {turn.get_version()}"
            turn_number = turn.try_get_turn_nr()
            turn_comment = f"   Turn = {turn_number}" if turn_number else "   Unknown turn?"
            vph_a, vph_b = trailer.vph_key
            yield from self._line("VPH A", format_hex(vph_a), f"-> VPH = {format_hex(vph_a ^ vph_b)}")
            yield from self._line("VPH B", format_hex(vph_b), turn_comment)
            charset = turn.charset
            yield from self._value("RegStr1", decode_string_pair(trailer.regstr1).decode(charset, errors="replace"))
            yield from self._value("RegStr2", decode_string_pair(trailer.regstr2).decode(charset, errors="replace"))
            yield from self._value("RegStr3", unpack_fixed_string(trailer.regstr3).decode(charset, errors="replace"),
                                   "Player Name")
            yield from self._value("RegStr4", unpack_fixed_string(trailer.regstr4).decode(charset, errors="replace"),
                                   "Player Address")
            yield ""
            yield "; DOS Trailer follows:"
        else:
            yield "; Version 3.0 file format (DOS)"

        dos = turn.dos_trailer
        stored = dos.checksum & 0xFFFFFFFF
        if self.verify_trailer_checksum and not turn.is_dirty():
            computed = turn.compute_turn_checksum()
            comment = "okay" if computed == stored else f"ERROR: should be {format_hex(computed)}"
            yield from self._line("Checksum", format_hex(stored), comment)
        else:
            yield from self._line("Checksum", format_hex(stored))

        yield from self._line("Unused", format_hex(dos.signature), describe_signature(dos.signature))

        key = dos.registration_key
        line1, error1 = decode_key_line(key[:KEY_LINE_LENGTH])
        line2, error2 = decode_key_line(key[KEY_LINE_LENGTH:2 * KEY_LINE_LENGTH])
        yield from self._value("RegStr1", line1.decode(turn.charset, errors="replace"))
        yield from self._value("RegStr2", line2.decode(turn.charset, errors="replace"))

        expected = compute_registration_sum(key[:2 * KEY_LINE_LENGTH])
        comment = "okay" if expected == key[-1] else f"ERROR: should be {format_hex(expected)}"
        yield from self._line("RegSum", format_hex(key[-1]), comment)
        if error1 or error2:
            yield '; WARNING: Encoding error (indicated with "?")'

        yield ""
        yield "PlayerLog"
        for player, word in enumerate(dos.player_secret, start=1):
            yield from self._line(f"  Player{player}", format_hex(word))
