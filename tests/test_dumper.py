"""
Tests for the turn file listing.
"""

import io

from trnkit.trn.commands import CommandCode
from trnkit.trn.dumper import TurnDumper, format_hex, quote_string
from trnkit.trn.registration import RegistrationKey
from trnkit.trn.structures import CommandType, Feature
from trnkit.trn.turnfile import TurnFile


def listing(turn, **options) -> list[str]:
    return list(TurnDumper(**options).iter_lines(turn))


class TestFormatting:
    """Tests for value formatting helpers."""

    def test_quote_plain(self):
        assert quote_string("abc") == '"abc"'

    def test_quote_escapes(self):
        assert quote_string('a"b\\c') == '"a\\"b\\\\c"'
        assert quote_string("\r\n") == '"\\r\\n"'
        assert quote_string("\x01") == '"\\001"'

    def test_format_hex(self):
        assert format_hex(0x21) == "00000021"
        assert format_hex(-1) == "FFFFFFFF"


class TestHeaderListing:
    """Tests for the header part of the listing."""

    def test_header_values(self, mission_turn):
        lines = listing(mission_turn)
        assert "; Winplan trailer present, sub-version 1" in lines
        assert "Player               = 3" in lines
        assert "Commands             = 1" in lines
        assert 'Timestamp            = "12-24-200613:04:55"' in lines

    def test_time_checksum_comment_column(self, mission_turn):
        line = next(l for l in listing(mission_turn) if l.startswith("Time checksum"))
        assert line.index(";") == 50
        assert line.endswith("; okay")

    def test_wrong_time_checksum(self, mission_turn_data):
        turn = TurnFile.from_bytes(mission_turn_data)
        turn.header.time_checksum = 1
        line = next(l for l in listing(turn) if l.startswith("Time checksum"))
        assert "WRONG, should be 913" in line

    def test_no_header(self, mission_turn):
        lines = listing(mission_turn, show_header=False)
        assert not any(line.startswith("Player ") for line in lines)

    def test_taccom_directory(self, mission_turn):
        mission_turn.add_file(b"hello", "note.txt")
        mission_turn.update()
        lines = listing(mission_turn)
        assert "; Taccom file format" in lines
        assert ";   turn data, 611 bytes, position 219" in lines
        assert ';   file "note.txt", 5 bytes, position 830' in lines


class TestCommandListing:
    """Tests for command listings."""

    def test_mission_command(self, mission_turn):
        lines = listing(mission_turn, show_header=False, show_trailer=False)
        assert lines[0].startswith("ShipChangeMission")
        assert lines[0].endswith("; index 1, position 00000021")
        assert lines[1] == "  Ship Id            = 7"
        assert lines[2] == "  Mission            = 2"

    def test_no_comments(self, mission_turn):
        lines = listing(mission_turn, show_header=False, show_trailer=False, show_comments=False)
        assert lines[0] == "ShipChangeMission"
        assert not any(";" in line for line in lines)

    def test_message(self, fresh_turn):
        fresh_turn.send_message(3, 5, "Hello\nWorld")
        fresh_turn.update()
        lines = listing(fresh_turn, show_header=False, show_trailer=False)
        assert "  From               = 3" in lines
        assert "  To                 = 5" in lines
        assert '    "Hello"' in lines
        assert '    "World"' in lines

    def test_password_not_decoded(self, fresh_turn):
        fresh_turn.add_command(CommandCode.CHANGE_PASSWORD, 0, b"secret".ljust(10, b"\0"))
        fresh_turn.update()
        lines = listing(fresh_turn, show_header=False, show_trailer=False)
        assert "; Intentionally not decoded." in lines
        assert not any("secret" in line for line in lines)

    def test_fix_recycle(self, fresh_turn):
        fresh_turn.add_command(CommandCode.BASE_FIX_RECYCLE_SHIP, 12, b"\x02\x00")
        fresh_turn.update()
        line = next(l for l in listing(fresh_turn, show_header=False, show_trailer=False)
                    if l.startswith("  Action"))
        assert line.endswith("; Recycle")

    def test_sendback_hex(self, fresh_turn):
        fresh_turn.add_command(CommandCode.SEND_BACK, 4, b"\x01\x00\x03\x00ABC")
        fresh_turn.update()
        lines = listing(fresh_turn, show_header=False, show_trailer=False)
        assert "  Receiver           = 4" in lines
        assert any(line.startswith("  00000000: 41 42 43") and line.endswith("ABC") for line in lines)

    def test_type_filter(self, fresh_turn):
        fresh_turn.add_command(CommandCode.SHIP_CHANGE_SPEED, 1, b"\x09\x00")
        fresh_turn.add_command(CommandCode.PLANET_CHANGE_MINES, 2, b"\x05\x00")
        fresh_turn.update()
        dumper = TurnDumper(show_header=False, show_trailer=False,
                            type_filter=[CommandType.PLANET])
        lines = list(dumper.iter_lines(fresh_turn))
        assert any(line.startswith("PlanetChangeMines") for line in lines)
        assert not any(line.startswith("ShipChangeSpeed") for line in lines)

    def test_dump_reports_match(self, mission_turn):
        output = io.StringIO()
        assert TurnDumper(type_filter=[CommandType.SHIP]).dump(mission_turn, output)
        assert not TurnDumper(type_filter=[CommandType.BASE]).dump(mission_turn, io.StringIO())
        assert "ShipChangeMission" in output.getvalue()


class TestTrailerListing:
    """Tests for the trailer part of the listing."""

    def test_checksum_okay(self, mission_turn):
        line = next(l for l in listing(mission_turn) if l.startswith("Checksum"))
        assert line.endswith("; okay")

    def test_checksum_error(self, mission_turn_data):
        data = bytearray(mission_turn_data)
        data[355] ^= 0xFF
        turn = TurnFile.from_bytes(bytes(data))
        line = next(l for l in listing(turn) if l.startswith("Checksum"))
        assert "ERROR: should be" in line

    def test_checksum_not_verified(self, mission_turn_data):
        data = bytearray(mission_turn_data)
        data[355] ^= 0xFF
        turn = TurnFile.from_bytes(bytes(data))
        line = next(l for l in listing(turn, verify_trailer_checksum=False) if l.startswith("Checksum"))
        assert ";" not in line

    def test_signature(self, mission_turn):
        line = next(l for l in listing(mission_turn) if l.startswith("Unused"))
        assert "474E3243" in line
        assert line.endswith("; c2ng")

    def test_registration(self, fresh_turn):
        key = RegistrationKey.from_lines("Line one", "Line two", "Player Name", "Address")
        fresh_turn.set_registration_key(key, 42)
        fresh_turn.update()
        lines = listing(fresh_turn)
        assert 'RegStr1              = "Line one"' in lines
        assert any(line.startswith("RegStr3") and "Player Name" in line for line in lines)
        assert any("Turn = 42" in line for line in lines)
        reg_sum = next(l for l in lines if l.startswith("RegSum"))
        assert reg_sum.endswith("; okay")

    def test_dos_only(self, mission_turn):
        mission_turn.set_features(Feature.NONE)
        mission_turn.update()
        lines = listing(mission_turn)
        assert "; Version 3.0 file format (DOS)" in lines
        assert not any(line.startswith("VPH A") for line in lines)

    def test_player_log(self, mission_turn):
        lines = listing(mission_turn)
        assert "PlayerLog" in lines
        assert "  Player11           = 00000000" in lines
