"""
Registration Key Encoding
=========================

This module implements the registration part of turn file trailers.

Both trailers carry the player's registration information:

- The DOS trailer holds the 51-word registration key. Hosts use this
  half; it is stored verbatim.
- The Windows trailer holds the four registration lines for display.
  Lines 1 and 2 are masked with a one-time pad drawn from a seeded
  random number generator; the pad is stored next to the cipher text.
  Lines 3 and 4 (player name and address) are stored in the clear.

Turn Number Fingerprint
-----------------------
The Windows trailer's vphKey words encode the turn number a file was
made for:

    vphKey[1] = r                          (31-bit random value)
    vphKey[0] = MAGIC_NUMBERS[turn % 311] ^ r

The turn number is recovered by searching the magic table for
(vphKey[0] ^ vphKey[1]) & 0x7FFFFFFF. Index 0 stands for turn 311.

Registration Key Words
----------------------
    Words   Content
    -----   -------
    0..24   Line 1, character i stored as char * (13 + 13*i)
    25..49  Line 2, same scheme
    50      668 + sum of words 0..49
"""

from dataclasses import dataclass, field
import logging

from trnkit.trn.checksum import compute_registration_sum
from trnkit.trn.structures import (
    REGISTRATION_KEY_WORDS,
    WindowsTrailer,
    pack_fixed_string,
    unpack_fixed_string,
)

logger = logging.getLogger(__name__)


# Characters per encoded key line
KEY_LINE_LENGTH = 25

# Lines of a registration key
NUM_KEY_LINES = 4


# =============================================================================
# Random Number Generator
# =============================================================================

class RandomNumberGenerator:
    """
    Linear congruential generator used by the DOS/Windows clients.

    The sequence must be reproduced exactly; the pad bytes and the
    vphKey random value of every turn come from it.
    """

    MULTIPLIER = 134775813

    def __init__(self, seed: int):
        self.seed = seed & 0xFFFFFFFF

    def __call__(self, limit: int | None = None) -> int:
        """
        Advance the generator.

        Args:
            limit: If given, scale the result to 0..limit-1

        Returns:
            Next 16-bit value, or the scaled value if limit is given
        """
        self.seed = (self.MULTIPLIER * self.seed + 1) & 0xFFFFFFFF
        value = self.seed >> 16
        if limit is None:
            return value
        return (value * limit) >> 16


# =============================================================================
# Magic Number Table
# =============================================================================
# Turn number fingerprints. These values are fixed by the Windows client
# and cannot be derived.

MAGIC_NUMBERS: tuple[int, ...] = (
    1585242373, 458484639, 1702713875, 2131768570, 943874411,
    1531045611, 622829488, 660770929, 473301358, 1868910709,
    439267666, 1259778247, 187160419, 205520992, 1162432602,
    2048525217, 663275107, 1945076761, 1912495862, 372583676,
    2110506768, 972564220, 1627953855, 1696231547, 1825551059,
    690525357, 1425805634, 1273009202, 1643106825, 1033503714,
    1773067018, 1444056607, 841306782, 1311137219, 472310692,
    1658228604, 214806212, 1638334074, 870981249, 1438230436,
    1722981495, 383237037, 1014208183, 1950729749, 1381216466,
    1149684732, 1475271197, 990158844, 659846975, 131158828,
    1269952134, 1929873739, 149943298, 94038386, 1639179540,
    519578396, 649680371, 2139806121, 48126387, 1820750093,
    2002158429, 834011058, 127330762, 1341047341, 45011247,
    1210785240, 102394054, 1033444233, 1452787209, 1636216880,
    2001004855, 196571844, 768753436, 1715639759, 9036553,
    550413001, 1195957868, 566073290, 1386247611, 725117880,
    637842515, 782679024, 614960412, 1259473924, 710893647,
    137748852, 808495109, 1174108532, 2141228605, 1298353301,
    1989952843, 607318838, 1868217839, 2046567417, 1297732528,
    886928938, 533473933, 667670866, 1241783877, 1634258231,
    1529167548, 1048674755, 108553737, 442206379, 1427828321,
    178793040, 57025576, 1886069810, 1452681265, 392872129,
    1749094387, 1931946557, 610131601, 497923660, 800378618,
    833787008, 1047995126, 867114247, 108316439, 1889137816,
    1566927898, 1606954817, 2129997452, 176508207, 1504084876,
    781656333, 1575411145, 952282888, 1920012969, 725392878,
    442033280, 2055008888, 125996860, 648896510, 1271579722,
    734745843, 457213090, 101154514, 1253209494, 649313503,
    665663012, 1284757233, 526008074, 1128559135, 708376521,
    1888247159, 637430572, 1297014774, 84473586, 1938406737,
    278055502, 2082329430, 784004382, 886858342, 487519681,
    979889529, 2118032563, 376523135, 2037399162, 494383465,
    1744352698, 533745717, 752066469, 1518627158, 347571084,
    1270232880, 460005993, 1754379254, 1431354806, 103810045,
    676346171, 948969734, 1270441550, 562587328, 305781542,
    48494333, 263492952, 1020466270, 190108896, 1009887493,
    1263640424, 2136294797, 951195719, 1154885409, 533815976,
    707619918, 1293089160, 1565561820, 1424862457, 2024541688,
    1849356050, 804648133, 1041775421, 1752468846, 2051572786,
    749910457, 1708669854, 1592915884, 1123095599, 1460717743,
    1948843781, 1082061162, 1152635918, 1881839283, 760734026,
    1910315568, 1258782923, 2051380841, 1725205147, 585278536,
    1106219491, 444629203, 1099824661, 734821072, 2025557656,
    657473172, 255537853, 291983710, 286553905, 42517818,
    670349676, 870581336, 1127381655, 1839475352, 632654867,
    547547534, 1471914002, 1512583684, 890892484, 1857789058,
    1587065657, 709203658, 1447182906, 950862839, 1854232374,
    1589606089, 18301536, 700074959, 415606342, 1405416566,
    1289157530, 1227135268, 340764183, 419122630, 1884968096,
    326246210, 540566661, 853062096, 1975701318, 1492562570,
    1963382636, 1075710563, 758982437, 2060895641, 1152739182,
    1371354866, 800770398, 1598945131, 79563287, 694771023,
    1704620086, 248109047, 95128540, 1062172273, 810095152,
    2013227291, 1998220334, 1498632230, 1836447618, 217773428,
    986641406, 603013591, 1230144401, 1075426659, 1746848829,
    817629711, 186988432, 1484074762, 843442591, 776096924,
    1024866700, 2027642148, 1049701698, 247896996, 387855251,
    857506062, 165410039, 1748384075, 1958279260, 1593211160,
    1998805368, 1633675306, 2048559498, 1569149953, 1404385053,
    784606841, 1589733669, 373455454, 909199500, 1312922206,
    408034973, 997233876, 963117498, 742951874, 10752697,
    574771227, 794412355, 92609016, 392712605, 964282276,
    1732686549,
)


# =============================================================================
# Registration Key
# =============================================================================

def encode_key_line(text: bytes) -> list[int]:
    """Encode one key line into 25 key words."""
    padded = pack_fixed_string(text, KEY_LINE_LENGTH)
    return [char * (13 + 13 * i) for i, char in enumerate(padded)]


def decode_key_line(words: list[int]) -> tuple[bytes, bool]:
    """
    Decode 25 key words into a key line.

    Returns:
        Tuple of (decoded text without padding, error flag). Words that
        are not an exact multiple of their factor decode as "?" and set
        the error flag.
    """
    result = bytearray()
    error = False
    for i, word in enumerate(words[:KEY_LINE_LENGTH]):
        factor = 13 + 13 * i
        if word % factor:
            error = True
            result.append(ord("?"))
        else:
            result.append((word // factor) & 0xFF)
    return unpack_fixed_string(bytes(result)), error


@dataclass
class RegistrationKey:
    """
    A player's registration key.

    Attributes:
        lines: Four display lines (registration strings 1..4). Lines 3
            and 4 are the player name and address.
        words: 51 key words as stored in the DOS trailer
    """
    lines: list[str] = field(default_factory=lambda: [""] * NUM_KEY_LINES)
    words: list[int] = field(default_factory=lambda: [0] * REGISTRATION_KEY_WORDS)

    def __post_init__(self) -> None:
        if len(self.lines) != NUM_KEY_LINES:
            raise ValueError(f"Registration key needs {NUM_KEY_LINES} lines, got {len(self.lines)}")
        if len(self.words) != REGISTRATION_KEY_WORDS:
            raise ValueError(
                f"Registration key needs {REGISTRATION_KEY_WORDS} words, got {len(self.words)}"
            )

    @classmethod
    def from_lines(cls, line1: str, line2: str, line3: str = "", line4: str = "",
                   charset: str = "cp437") -> "RegistrationKey":
        """
        Create a key from its text lines, computing the key words.

        Lines 1 and 2 are encoded into words 0..49; word 50 receives
        the registration sum.
        """
        words = (encode_key_line(line1.encode(charset, errors="replace"))
                 + encode_key_line(line2.encode(charset, errors="replace")))
        words.append(compute_registration_sum(words))
        return cls(lines=[line1, line2, line3, line4], words=words)

    @classmethod
    def from_words(cls, words: list[int], charset: str = "cp437") -> "RegistrationKey":
        """Create a key from DOS trailer words, decoding lines 1 and 2."""
        line1, _ = decode_key_line(words[:KEY_LINE_LENGTH])
        line2, _ = decode_key_line(words[KEY_LINE_LENGTH:2 * KEY_LINE_LENGTH])
        return cls(
            lines=[line1.decode(charset, errors="replace"),
                   line2.decode(charset, errors="replace"), "", ""],
            words=list(words),
        )

    @classmethod
    def unregistered(cls) -> "RegistrationKey":
        """Key of an unregistered (shareware) player."""
        return cls.from_lines("VGA Planets shareware", "Version 3.00")

    def get_line(self, index: int) -> str:
        """Get a display line (0..3)."""
        return self.lines[index]

    def is_registered(self) -> bool:
        return self.words != RegistrationKey.unregistered().words


# =============================================================================
# Trailer Encoding
# =============================================================================

def encode_string_pair(text: bytes, rng: RandomNumberGenerator) -> list[bytes]:
    """
    Mask a registration line with a fresh pad.

    Returns:
        [cipher, pad], 25 bytes each
    """
    plain = pack_fixed_string(text, KEY_LINE_LENGTH)
    pad = bytes(rng(256) for _ in range(KEY_LINE_LENGTH))
    cipher = bytes(p ^ k for p, k in zip(plain, pad))
    return [cipher, pad]


def decode_string_pair(pair: list[bytes]) -> bytes:
    """Recover a masked registration line (cipher XOR pad), without padding."""
    return unpack_fixed_string(bytes(c ^ k for c, k in zip(pair[0], pair[1])))


def encode_registration(key: RegistrationKey, player_id: int, turn_number: int,
                        trailer: WindowsTrailer, charset: str) -> None:
    """
    Write the Windows trailer half of a registration key.

    The generator is seeded with player + (turn << 16); the draw order
    is 25 pad bytes for line 1, 25 for line 2, then two 16-bit draws
    for the fingerprint random value.

    Args:
        key: Registration key to encode
        player_id: Player number
        turn_number: Turn number to fingerprint
        trailer: Windows trailer to update in place
        charset: Codec for the display lines
    """
    rng = RandomNumberGenerator(player_id + (turn_number << 16))

    def encode(line: int, size: int) -> bytes:
        return pack_fixed_string(key.get_line(line).encode(charset, errors="replace"), size)

    trailer.regstr3 = encode(2, 50)
    trailer.regstr4 = encode(3, 50)
    trailer.unused = bytes(len(trailer.unused))
    trailer.regstr1 = encode_string_pair(encode(0, KEY_LINE_LENGTH), rng)
    trailer.regstr2 = encode_string_pair(encode(1, KEY_LINE_LENGTH), rng)

    random_value = rng() << 16
    random_value |= rng()
    random_value &= 0x7FFFFFFF

    trailer.vph_key = [MAGIC_NUMBERS[turn_number % len(MAGIC_NUMBERS)] ^ random_value, random_value]
    logger.debug(f"Encoded registration for player {player_id}, turn {turn_number}")


def try_recover_turn_number(trailer: WindowsTrailer) -> int:
    """
    Recover the turn number from a Windows trailer fingerprint.

    Returns:
        Turn number (1..311), or 0 if the fingerprint is not in the table
    """
    fingerprint = (trailer.vph_key[0] ^ trailer.vph_key[1]) & 0x7FFFFFFF
    try:
        index = MAGIC_NUMBERS.index(fingerprint)
    except ValueError:
        return 0
    return index if index != 0 else len(MAGIC_NUMBERS)
