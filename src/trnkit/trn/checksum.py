"""
Turn File Checksum Calculations
===============================

This module provides the checksum functions for VGA Planets turn files.

Timestamp Checksum
------------------
The header stores the byte sum of the 18-byte timestamp in its last
field. Hosts compare it against the timestamp to detect garbled turns.

Turn Checksum
-------------
The DOS trailer starts with the turn checksum:
- Algorithm: byte sum over the turn body, from the header start up to
  (but excluding) the DOS trailer; the Windows trailer is included
- Plus three times the timestamp checksum
- Plus 13
- Result wraps modulo 2^32

Registration Sum
----------------
The last word of the registration key is a checksum over the first 50
words, seeded with 668. Maketurn programs that do not know a key can
still produce a valid-looking one, so a good sum only means the key
was not garbled in transit.

Signatures
----------
The second DOS trailer word identifies the program that wrote the file.
It is informational only; hosts ignore it.
"""

from collections.abc import Iterable

from trnkit.trn.structures import REGISTRATION_KEY_WORDS


# Added to the byte sum of the turn body, along with 3*time_checksum
TURN_CHECKSUM_BIAS = 13

# Seed of the registration key sum
REGISTRATION_SUM_SEED = 668

# Known trailer signatures, by value
KNOWN_SIGNATURES: dict[int, str] = {
    0x32434350: "PCC2",
    0x49494343: "PCC2",
    0x21434350: "PCC",
    0x474E3243: "c2ng",
    0x2E522E53: "Stefan's Portable Maketurn",
    0x6F72656B: "k-Maketurn",
    0x6F72654B: "k-Maketurn",
    0x00000000: "Tim's Maketurn or VPmaketurn",
}


def byte_sum(data: bytes, seed: int = 0) -> int:
    """
    Sum all bytes plus seed, modulo 2^32.

    Args:
        data: Bytes to sum
        seed: Initial value

    Returns:
        Unsigned 32-bit sum
    """
    return (seed + sum(data)) & 0xFFFFFFFF


def compute_time_checksum(timestamp: bytes) -> int:
    """Timestamp checksum as stored in the header (signed 16-bit)."""
    value = byte_sum(timestamp) & 0xFFFF
    return value - 0x10000 if value >= 0x8000 else value


def compute_turn_checksum(body: bytes, time_checksum: int) -> int:
    """
    Calculate the turn checksum stored in the DOS trailer.

    Args:
        body: Turn bytes from the header start up to the DOS trailer
        time_checksum: Timestamp checksum from the header, as stored

    Returns:
        Unsigned 32-bit checksum
    """
    return byte_sum(body, 3 * time_checksum + TURN_CHECKSUM_BIAS)


def compute_registration_sum(words: Iterable[int]) -> int:
    """Registration key sum over the given words, seeded with 668."""
    return (REGISTRATION_SUM_SEED + sum(words)) & 0xFFFFFFFF


def verify_registration_key(words: list[int]) -> bool:
    """Check that the last key word is the sum of the others."""
    if len(words) != REGISTRATION_KEY_WORDS:
        return False
    return compute_registration_sum(words[:-1]) == (words[-1] & 0xFFFFFFFF)


def describe_signature(signature: int) -> str:
    """Name the program that wrote a DOS trailer signature."""
    return KNOWN_SIGNATURES.get(signature & 0xFFFFFFFF, "Tim's Maketurn")
