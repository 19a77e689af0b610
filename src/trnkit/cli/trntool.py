"""
trntool - Turn File Command-Line Interface
==========================================

This module implements the command-line interface for inspecting and
editing VGA Planets v3 turn files.

Commands
--------
- **info**: Show a summary of a turn file
- **dump**: List the complete content of a turn file ("un-trn")
- **validate**: Check structure and checksums
- **sort**: Bring commands into canonical order and rebuild the file
- **attach**: Add files to the Taccom container
- **detach**: Remove an attachment
- **extract**: Save attachments to disk

Usage Examples
--------------
Show the orders of a turn:
    $ trntool dump player3.trn

Show only ship commands, without trailers or comments:
    $ trntool dump --type ship --no-trailer --no-comments player3.trn

Check a turn before sending it:
    $ trntool validate player3.trn

Attach a file:
    $ trntool attach player3.trn notes.txt

Environment
-----------
TRNKIT_CHARSET, TRNKIT_VERSION, and TRNKIT_MAX_COMMANDS provide
defaults; see trnkit.config.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from trnkit import __version__
from trnkit.cli.errors import ExitCode, handle_cli_exception
from trnkit.config import TurnConfig
from trnkit.errors import TrnError
from trnkit.trn import (
    CommandType,
    TurnDumper,
    TurnFile,
    byte_sum,
    describe_signature,
)
from trnkit.trn.checksum import verify_registration_key

logger = logging.getLogger(__name__)


# =============================================================================
# CLI Context and Utilities
# =============================================================================

class Context:
    """
    Shared context for CLI commands.

    Stores the configuration and verbosity.
    """

    def __init__(self) -> None:
        self.config: TurnConfig = TurnConfig()
        self.verbose: bool = False

    def setup_logging(self) -> None:
        """Configure logging based on verbosity."""
        level = logging.DEBUG if self.verbose else logging.WARNING
        logging.basicConfig(
            level=level,
            format="%(levelname)s: %(message)s" if self.verbose else "%(message)s",
        )

    def load(self, path: Path, full_parse: bool = True) -> TurnFile:
        """Read a turn file with the configured settings."""
        return TurnFile.from_file(path, full_parse=full_parse, config=self.config)


pass_context = click.make_pass_decorator(Context, ensure=True)


TYPE_NAMES = {
    "ship": CommandType.SHIP,
    "planet": CommandType.PLANET,
    "base": CommandType.BASE,
    "other": CommandType.OTHER,
}


def _write_turn(turn: TurnFile, source: Path, output: Optional[Path]) -> Path:
    """Rebuild and write a turn, in place unless output is given."""
    target = output or source
    turn.update()
    turn.write_file(target)
    return target


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.option(
    "-c", "--charset",
    type=str,
    default=None,
    help="Character set of strings in turn files (default: cp437)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.version_option(__version__, "--version", "-V", prog_name="trntool")
@pass_context
def main(ctx: Context, charset: Optional[str], verbose: bool) -> None:
    """
    Turn file tool for VGA Planets 3.

    Inspect, validate, and edit player turn files (playerN.trn).

    \b
    Commands:
      info      Show turn file summary
      dump      List turn file content
      validate  Check structure and checksums
      sort      Sort commands into canonical order
      attach    Add files to the turn
      detach    Remove an attached file
      extract   Save attached files
    """
    ctx.verbose = verbose
    ctx.config = TurnConfig.from_env()
    if charset:
        try:
            ctx.config.charset = TurnConfig(charset=charset).charset
        except LookupError:
            raise click.BadParameter(f"unknown character set '{charset}'", param_hint="--charset")
    ctx.setup_logging()


# =============================================================================
# Info Command
# =============================================================================

@main.command("info")
@click.argument(
    "trn_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--header-only",
    is_flag=True,
    help="Read only header and trailers (works on damaged files)",
)
@pass_context
def cmd_info(ctx: Context, trn_file: Path, header_only: bool) -> None:
    """
    Show a summary of a turn file.

    \b
    Example:
      trntool info player3.trn
    """
    try:
        turn = ctx.load(trn_file, full_parse=not header_only)

        click.echo(f"Turn File: {trn_file}")
        click.echo(f"  Player:       {turn.get_player()}")
        click.echo(f"  Timestamp:    {turn.get_timestamp()}")
        if header_only:
            click.echo(f"  Commands:     {turn.header.num_commands} (from header)")
        else:
            click.echo(f"  Commands:     {turn.get_num_commands()}")

        if turn.windows_trailer is not None:
            click.echo(f"  Format:       Winplan, sub-version {turn.get_version()}")
            turn_number = turn.try_get_turn_nr()
            click.echo(f"  Turn number:  {turn_number if turn_number else 'unknown'}")
        else:
            click.echo("  Format:       DOS")

        click.echo(f"  Written by:   {describe_signature(turn.dos_trailer.signature)}")
        if not header_only:
            status = "okay" if turn.compute_turn_checksum() == turn.dos_trailer.checksum else "WRONG"
            click.echo(f"  Checksum:     {turn.dos_trailer.checksum:08X} ({status})")

        if turn.taccom_header is not None:
            click.echo(f"  Attachments:  {turn.get_num_files()}")
            for index in range(len(turn.taccom_header.attachments)):
                name = turn.get_file_name(index)
                if name is not None:
                    size = turn.taccom_header.attachments[index].length
                    click.echo(f"    [{index}] {name} ({size} bytes)")

    except Exception as e:
        handle_cli_exception(e, verbose=ctx.verbose)


# =============================================================================
# Dump Command
# =============================================================================

@main.command("dump")
@click.argument(
    "trn_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--no-header", is_flag=True, help="Do not list the header")
@click.option("--no-trailer", is_flag=True, help="Do not list the trailers")
@click.option("--no-comments", is_flag=True, help="Do not add comments")
@click.option("--no-verify", is_flag=True, help="Do not verify the trailer checksum")
@click.option(
    "-t", "--type",
    "types",
    type=click.Choice(list(TYPE_NAMES), case_sensitive=False),
    multiple=True,
    help="List only commands of this type (repeatable)",
)
@click.option(
    "-s", "--sort",
    "sort_commands",
    is_flag=True,
    help="List commands in canonical order",
)
@pass_context
def cmd_dump(
    ctx: Context,
    trn_file: Path,
    no_header: bool,
    no_trailer: bool,
    no_comments: bool,
    no_verify: bool,
    types: tuple[str, ...],
    sort_commands: bool,
) -> None:
    """
    List the content of a turn file.

    With --type, the exit code is 1 if no command matched.

    \b
    Examples:
      trntool dump player3.trn
      trntool dump --type ship --type base player3.trn
    """
    matched = False
    try:
        turn = ctx.load(trn_file)
        if sort_commands:
            turn.sort_commands()

        dumper = TurnDumper(
            show_comments=not no_comments,
            show_header=not no_header,
            show_trailer=not no_trailer,
            verify_trailer_checksum=not no_verify,
            type_filter=[TYPE_NAMES[t.lower()] for t in types] if types else None,
        )
        for line in dumper.iter_lines(turn):
            click.echo(line)
        if types:
            matched = any(dumper.accept(turn, i) for i in range(turn.get_num_commands()))
    except Exception as e:
        handle_cli_exception(e, verbose=ctx.verbose)

    if types and not matched:
        sys.exit(ExitCode.FILE_ERROR)


# =============================================================================
# Validate Command
# =============================================================================

@main.command("validate")
@click.argument(
    "trn_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@pass_context
def cmd_validate(ctx: Context, trn_file: Path) -> None:
    """
    Validate a turn file.

    Checks:
    - File structure (header, command directory, trailers)
    - Timestamp checksum
    - Turn checksum
    - Registration key sum

    \b
    Example:
      trntool validate player3.trn
    """
    errors = []
    warnings = []
    turn = None

    try:
        turn = ctx.load(trn_file)
    except Exception as e:
        if not isinstance(e, TrnError):
            handle_cli_exception(e, verbose=ctx.verbose)
        errors.append(str(e))

    if turn is not None:
        expected = byte_sum(turn.get_timestamp().raw)
        if turn.header.time_checksum & 0xFFFF != expected:
            errors.append(
                f"Timestamp checksum mismatch: header {turn.header.time_checksum & 0xFFFF}, "
                f"calculated {expected}"
            )

        computed = turn.compute_turn_checksum()
        if computed != turn.dos_trailer.checksum:
            errors.append(
                f"Turn checksum mismatch: trailer 0x{turn.dos_trailer.checksum:08X}, "
                f"calculated 0x{computed:08X}"
            )

        if not verify_registration_key(turn.dos_trailer.registration_key):
            warnings.append("Registration key sum is wrong")

        if turn.windows_trailer is not None and not turn.try_get_turn_nr():
            warnings.append("Turn number fingerprint not recognised")

        if ctx.verbose:
            click.echo("Validation Details:")
            click.echo(f"  Player: {turn.get_player()}")
            click.echo(f"  Commands parsed: {turn.get_num_commands()}")
            click.echo(f"  Turn checksum: 0x{computed:08X}")

    for warning in warnings:
        click.echo(f"Warning: {warning}", err=True)

    if errors:
        for error in errors:
            click.echo(f"Error: {error}", err=True)
        click.echo(f"INVALID: {trn_file}")
        sys.exit(ExitCode.FILE_ERROR)

    click.echo(f"OK: {trn_file}")


# =============================================================================
# Sort Command
# =============================================================================

@main.command("sort")
@click.argument(
    "trn_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file (default: overwrite input)",
)
@pass_context
def cmd_sort(ctx: Context, trn_file: Path, output: Optional[Path]) -> None:
    """
    Sort commands into canonical order and rebuild the file.

    Rebuilding also drops deleted and unknown commands and recomputes
    all checksums.

    \b
    Example:
      trntool sort -o sorted.trn player3.trn
    """
    try:
        turn = ctx.load(trn_file)
        turn.sort_commands()
        target = _write_turn(turn, trn_file, output)
        click.echo(f"Wrote {target} ({turn.get_num_commands()} commands)")
    except Exception as e:
        handle_cli_exception(e, verbose=ctx.verbose)


# =============================================================================
# Attachment Commands
# =============================================================================

@main.command("attach")
@click.argument(
    "trn_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.argument(
    "files",
    nargs=-1,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file (default: overwrite input)",
)
@pass_context
def cmd_attach(ctx: Context, trn_file: Path, files: tuple[Path, ...], output: Optional[Path]) -> None:
    """
    Attach files to a turn.

    Each file is stored under its base name (at most 12 characters).
    The turn becomes a Taccom container.

    \b
    Example:
      trntool attach player3.trn notes.txt
    """
    try:
        turn = ctx.load(trn_file)
        for path in files:
            index = turn.add_file(path.read_bytes(), path.name)
            if ctx.verbose:
                click.echo(f"  {path.name} -> slot {index}")
        target = _write_turn(turn, trn_file, output)
        click.echo(f"Wrote {target} ({turn.get_num_files()} attachments)")
    except Exception as e:
        handle_cli_exception(e, verbose=ctx.verbose)


@main.command("detach")
@click.argument(
    "trn_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.argument("slot", type=int)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file (default: overwrite input)",
)
@pass_context
def cmd_detach(ctx: Context, trn_file: Path, slot: int, output: Optional[Path]) -> None:
    """
    Remove the attachment in SLOT (0-9).

    \b
    Example:
      trntool detach player3.trn 0
    """
    try:
        turn = ctx.load(trn_file)
        name = turn.get_file_name(slot)
        turn.delete_file(slot)
        target = _write_turn(turn, trn_file, output)
        if name is None:
            click.echo(f"Slot {slot} was empty; wrote {target}")
        else:
            click.echo(f"Removed {name}; wrote {target}")
    except Exception as e:
        handle_cli_exception(e, verbose=ctx.verbose)


@main.command("extract")
@click.argument(
    "trn_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    help="Output directory (default: current directory)",
)
@click.option(
    "-s", "--slot",
    type=int,
    default=None,
    help="Extract only this slot",
)
@pass_context
def cmd_extract(ctx: Context, trn_file: Path, output: Path, slot: Optional[int]) -> None:
    """
    Save attached files to a directory.

    \b
    Examples:
      trntool extract -o ./files/ player3.trn
      trntool extract -s 2 player3.trn
    """
    try:
        turn = ctx.load(trn_file)
        output.mkdir(parents=True, exist_ok=True)

        slots = [slot] if slot is not None else list(range(len(turn.taccom_header.attachments)
                                                            if turn.taccom_header else 0))
        count = 0
        for index in slots:
            name = turn.get_file_name(index)
            if name is None:
                if slot is not None:
                    click.echo(f"Error: Slot {index} is empty", err=True)
                    sys.exit(ExitCode.INVALID_ARGS)
                continue
            # Attachment names come from the file; never leave the output directory
            out_path = output / Path(name).name
            out_path.write_bytes(turn.get_file_data(index))
            if ctx.verbose:
                click.echo(f"  {name} -> {out_path}")
            count += 1

        if count == 0:
            click.echo("No attachments found in turn")
        else:
            click.echo(f"Extracted {count} files to {output}")
    except Exception as e:
        handle_cli_exception(e, verbose=ctx.verbose)


if __name__ == "__main__":
    main()
