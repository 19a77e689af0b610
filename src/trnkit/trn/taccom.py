"""
Taccom Container
================

Taccom (and compatible clients) can bundle a turn with additional
files, for example alliance messages or planet notes, into one
container file. The container starts with a 218-byte header:

    Offset  Size    Description
    ------  ----    -----------
    0       10      Magic "NCC1701AD9"
    10      4       Turn data address (1-based)
    14      4       Turn data size
    18      200     10 attachment slots

Each slot holds address (1-based), length, and a 12-byte file name. An
unused slot has an empty name. Turn data and attachments may appear in
any order after the header; the turn body is located by its address
alone, never by slot position.

Turn Placement
--------------
The placement is the number of attachment slots whose data precedes
the turn body in the file. When the container is rebuilt, the turn
body is written in front of the slot with that index, so a rebuilt
file keeps the original layout.
"""

from collections.abc import Callable
from typing import BinaryIO
import logging

from trnkit.errors import TurnFormatError
from trnkit.trn.structures import (
    TACCOM_MAGIC,
    TaccomAttachment,
    TaccomHeader,
    pack_fixed_string,
)

logger = logging.getLogger(__name__)


# Size of an attachment name field
ATTACHMENT_NAME_SIZE = 12


def probe(source: bytes | BinaryIO) -> bool:
    """
    Check whether data starts with the Taccom magic.

    Args:
        source: File content, or a seekable binary stream. The stream
            position is restored afterwards.

    Returns:
        True if the data is (probably) a Taccom container
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        head = bytes(source[:TaccomHeader.SIZE])
        return len(head) >= TaccomHeader.SIZE and head.startswith(TACCOM_MAGIC)

    position = source.tell()
    try:
        head = source.read(TaccomHeader.SIZE)
    finally:
        source.seek(position)
    return len(head) >= TaccomHeader.SIZE and head.startswith(TACCOM_MAGIC)


def find_free_slot(header: TaccomHeader) -> int | None:
    """Get the index of the first unused slot, None if all are in use."""
    for index, attachment in enumerate(header.attachments):
        if attachment.is_empty():
            return index
    return None


def count_files(header: TaccomHeader) -> int:
    """Count the slots in use."""
    return sum(1 for attachment in header.attachments if not attachment.is_empty())


def add_file(header: TaccomHeader, address: int, length: int, name: bytes) -> int | None:
    """
    Register an attachment in the first free slot.

    Args:
        header: Container header to update
        address: 1-based position of the attachment data
        length: Size of the attachment data
        name: Encoded file name (truncated to 12 bytes)

    Returns:
        Slot index, or None if the table is full
    """
    index = find_free_slot(header)
    if index is None:
        return None
    header.attachments[index] = TaccomAttachment(
        address=address,
        length=length,
        name=pack_fixed_string(name, ATTACHMENT_NAME_SIZE),
    )
    return index


def remove_file(header: TaccomHeader, index: int) -> None:
    """Zero-fill a slot. The data stays in place until the next rebuild."""
    header.attachments[index] = TaccomAttachment()


def locate_turn_body(header: TaccomHeader) -> tuple[int, int]:
    """
    Get the position of the turn body.

    Returns:
        Tuple of (zero-based offset, size)
    """
    return header.turn_address - 1, header.turn_size


def compute_turn_placement(header: TaccomHeader) -> int:
    """Compute how many attachment slots precede the turn body."""
    placement = 0
    for index, attachment in enumerate(header.attachments):
        if not attachment.is_empty() and attachment.address < header.turn_address:
            placement = index + 1
    return placement


def _check_range(offset: int, length: int, size: int, source: str | None) -> None:
    if offset < 0 or length < 0 or offset > size or length > size - offset:
        raise TurnFormatError("invalid file format (bad pointer)", source)


def validate_ranges(header: TaccomHeader, size: int, source: str | None = None) -> None:
    """
    Check that the turn body and every attachment lie within the file.

    Args:
        header: Container header
        size: Size of the container file
        source: Name for error messages

    Raises:
        TurnFormatError: If a range exceeds the file
    """
    _check_range(header.turn_address - 1, header.turn_size, size, source)
    for attachment in header.attachments:
        if not attachment.is_empty():
            _check_range(attachment.address - 1, attachment.length, size, source)


def build_container(header: TaccomHeader, placement: int, data: bytes,
                    emit_turn: Callable[[bytearray], None]) -> tuple[bytearray, TaccomHeader]:
    """
    Rebuild a container file.

    Attachments are copied from their current positions in data; the
    turn body is produced by emit_turn, which appends it to the buffer
    it receives.

    Args:
        header: Current container header
        placement: Slot index the turn body is written in front of
        data: Current file content (source of attachment data)
        emit_turn: Callback appending the turn body

    Returns:
        Tuple of (new file content, new header)
    """
    new_header = TaccomHeader(
        turn_address=header.turn_address,
        turn_size=header.turn_size,
        attachments=[TaccomAttachment(a.address, a.length, a.name) for a in header.attachments],
    )
    result = bytearray(TaccomHeader.SIZE)

    def write_turn() -> None:
        new_header.turn_address = len(result) + 1
        emit_turn(result)
        new_header.turn_size = len(result) + 1 - new_header.turn_address

    did_turn = False
    for index, attachment in enumerate(header.attachments):
        if index == placement:
            write_turn()
            did_turn = True
        if not attachment.is_empty():
            new_header.attachments[index].address = len(result) + 1
            start = attachment.address - 1
            result.extend(data[start:start + attachment.length])
    if not did_turn:
        write_turn()

    result[:TaccomHeader.SIZE] = new_header.to_bytes()
    logger.debug(f"Rebuilt Taccom container: {len(result)} bytes, "
                 f"{count_files(new_header)} attachments, turn at {new_header.turn_address}")
    return result, new_header
