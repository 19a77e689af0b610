"""
Tests for trntool - Turn File Command-Line Interface
====================================================

These tests run trntool commands on turn files written to an isolated
directory.
"""

from pathlib import Path

import pytest
from click.testing import CliRunner

from trnkit.cli.errors import ExitCode
from trnkit.cli.trntool import main
from trnkit.trn.structures import TaccomHeader
from trnkit.trn.turnfile import TurnFile


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workdir(runner, mission_turn_data):
    """Isolated directory holding player3.trn (the reference turn)."""
    with runner.isolated_filesystem():
        Path("player3.trn").write_bytes(mission_turn_data)
        yield Path(".")


# =============================================================================
# Info and Dump
# =============================================================================

class TestInfo:
    """Tests for trntool info."""

    def test_summary(self, runner, workdir):
        result = runner.invoke(main, ["info", "player3.trn"])
        assert result.exit_code == 0, result.output
        assert "Player:       3" in result.output
        assert "Commands:     1" in result.output
        assert "Winplan, sub-version 1" in result.output
        assert "c2ng" in result.output
        assert "(okay)" in result.output

    def test_header_only(self, runner, workdir):
        result = runner.invoke(main, ["info", "--header-only", "player3.trn"])
        assert result.exit_code == 0, result.output
        assert "(from header)" in result.output

    def test_missing_file(self, runner, workdir):
        result = runner.invoke(main, ["info", "nothing.trn"])
        assert result.exit_code == 2

    def test_broken_file(self, runner, workdir):
        Path("broken.trn").write_bytes(b"\0" * 20)
        result = runner.invoke(main, ["info", "broken.trn"])
        assert result.exit_code == ExitCode.FILE_ERROR
        assert "file too short" in result.output

    def test_unknown_charset(self, runner, workdir):
        result = runner.invoke(main, ["-c", "no-such-codec", "info", "player3.trn"])
        assert result.exit_code == 2


class TestDump:
    """Tests for trntool dump."""

    def test_listing(self, runner, workdir):
        result = runner.invoke(main, ["dump", "player3.trn"])
        assert result.exit_code == 0, result.output
        assert "ShipChangeMission" in result.output
        assert "PlayerLog" in result.output

    def test_options(self, runner, workdir):
        result = runner.invoke(main, ["dump", "--no-header", "--no-trailer", "--no-comments",
                                      "player3.trn"])
        assert result.exit_code == 0
        assert result.output.splitlines()[0] == "ShipChangeMission"
        assert "PlayerLog" not in result.output

    def test_type_match(self, runner, workdir):
        result = runner.invoke(main, ["dump", "-t", "ship", "player3.trn"])
        assert result.exit_code == 0

    def test_type_no_match(self, runner, workdir):
        result = runner.invoke(main, ["dump", "-t", "planet", "-t", "base", "player3.trn"])
        assert result.exit_code == ExitCode.FILE_ERROR
        assert "ShipChangeMission" not in result.output

    def test_invalid_type(self, runner, workdir):
        result = runner.invoke(main, ["dump", "-t", "fleet", "player3.trn"])
        assert result.exit_code == 2


# =============================================================================
# Validate
# =============================================================================

class TestValidate:
    """Tests for trntool validate."""

    def test_valid(self, runner, workdir):
        result = runner.invoke(main, ["validate", "player3.trn"])
        assert result.exit_code == 0, result.output
        assert "OK: player3.trn" in result.output
        # The reference turn carries no registration key
        assert "Registration key sum is wrong" in result.output

    def test_bad_checksum(self, runner, workdir, mission_turn_data):
        data = bytearray(mission_turn_data)
        data[36] ^= 0x01
        Path("player3.trn").write_bytes(bytes(data))
        result = runner.invoke(main, ["validate", "player3.trn"])
        assert result.exit_code == ExitCode.FILE_ERROR
        assert "Turn checksum mismatch" in result.output
        assert "INVALID: player3.trn" in result.output

    def test_bad_time_checksum(self, runner, workdir, mission_turn_data):
        data = bytearray(mission_turn_data)
        data[26] ^= 0x01
        Path("player3.trn").write_bytes(bytes(data))
        result = runner.invoke(main, ["validate", "player3.trn"])
        assert result.exit_code == ExitCode.FILE_ERROR
        assert "Timestamp checksum mismatch" in result.output

    def test_malformed(self, runner, workdir):
        Path("broken.trn").write_bytes(b"\x03\x00" + b"\xff" * 4 + b"\0" * 294)
        result = runner.invoke(main, ["validate", "broken.trn"])
        assert result.exit_code == ExitCode.FILE_ERROR
        assert "INVALID: broken.trn" in result.output

    def test_verbose(self, runner, workdir):
        result = runner.invoke(main, ["-v", "validate", "player3.trn"])
        assert result.exit_code == 0
        assert "Commands parsed: 1" in result.output


# =============================================================================
# Sort
# =============================================================================

class TestSort:
    """Tests for trntool sort."""

    def test_sort_to_output(self, runner, timestamp):
        turn = TurnFile(3, timestamp)
        turn.add_command(22, 5, b"\x01\x00")
        turn.add_command(2, 9, b"\x05\x00")
        turn.update()

        with runner.isolated_filesystem():
            turn.write_file("player3.trn")
            result = runner.invoke(main, ["sort", "-o", "sorted.trn", "player3.trn"])
            assert result.exit_code == 0, result.output
            assert "2 commands" in result.output

            sorted_turn = TurnFile.from_file("sorted.trn")
            assert sorted_turn.get_command_code(0) == 2
            assert sorted_turn.get_command_code(1) == 22
            # Input left alone
            assert TurnFile.from_file("player3.trn").get_command_code(0) == 22

    def test_sort_in_place(self, runner, workdir, mission_turn_data):
        result = runner.invoke(main, ["sort", "player3.trn"])
        assert result.exit_code == 0
        assert Path("player3.trn").read_bytes() == mission_turn_data


# =============================================================================
# Attachments
# =============================================================================

class TestAttachments:
    """Tests for attach, detach, and extract."""

    def test_attach(self, runner, workdir):
        Path("notes.txt").write_bytes(b"some notes")
        result = runner.invoke(main, ["attach", "player3.trn", "notes.txt"])
        assert result.exit_code == 0, result.output
        assert "1 attachments" in result.output

        data = Path("player3.trn").read_bytes()
        assert data.startswith(b"NCC1701AD9")
        assert len(data) == TaccomHeader.SIZE + 611 + 10

    def test_attach_too_many(self, runner, workdir):
        names = []
        for i in range(11):
            name = f"f{i}.txt"
            Path(name).write_bytes(b"x")
            names.append(name)
        result = runner.invoke(main, ["attach", "player3.trn", *names])
        assert result.exit_code == ExitCode.FILE_ERROR
        assert "attachment table full" in result.output

    def test_detach(self, runner, workdir):
        Path("a.txt").write_bytes(b"aaa")
        Path("b.txt").write_bytes(b"bbb")
        runner.invoke(main, ["attach", "player3.trn", "a.txt", "b.txt"])
        result = runner.invoke(main, ["detach", "player3.trn", "0"])
        assert result.exit_code == 0, result.output
        assert "Removed a.txt" in result.output

        turn = TurnFile.from_file("player3.trn")
        assert turn.get_num_files() == 1
        assert turn.get_file_name(1) == "b.txt"

    def test_detach_bad_slot(self, runner, workdir):
        result = runner.invoke(main, ["detach", "player3.trn", "10"])
        assert result.exit_code == ExitCode.INVALID_ARGS

    def test_extract(self, runner, workdir):
        Path("notes.txt").write_bytes(b"some notes")
        runner.invoke(main, ["attach", "player3.trn", "notes.txt", "-o", "bundle.trn"])
        result = runner.invoke(main, ["extract", "-o", "out", "bundle.trn"])
        assert result.exit_code == 0, result.output
        assert "Extracted 1 files" in result.output
        assert Path("out/notes.txt").read_bytes() == b"some notes"

    def test_extract_empty_slot(self, runner, workdir):
        result = runner.invoke(main, ["extract", "-s", "3", "player3.trn"])
        assert result.exit_code == ExitCode.INVALID_ARGS

    def test_extract_nothing(self, runner, workdir):
        result = runner.invoke(main, ["extract", "player3.trn"])
        assert result.exit_code == 0
        assert "No attachments found" in result.output
