"""
Turn Command Table and Codec
============================

Every order in a turn file is a command record:

    Offset  Size    Description
    ------  ----    -----------
    0       2       Command code (signed 16-bit)
    2       2       Id field (object Id for most commands)
    4       n       Payload

The payload size is implicit for most commands: it comes from the
static command table below, which is the wire protocol shared with
host programs. Two commands carry their own length:

- SendMessage (60): Id field is the message length; the payload is
  sender(2), receiver(2), text(Id bytes).
- SendBack (62): Id field is the receiving player; the payload is
  type(2), size(2), data(size bytes).

Codes that are not in the table (or are marked undefined) have an
unknown length. That is not an error here; callers must treat it as
"cannot compute length".

Canonical Order
---------------
- for all ships, in Id order, ship commands in code order;
- for all planets, in Id order, planet commands in code order;
- for all bases, in Id order, base commands in code order;
- messages (60), change password (61), sendback (62).

Undefined commands sort before everything else.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional
import struct

from trnkit.trn.structures import CommandType


# =============================================================================
# Command Codes
# =============================================================================

class CommandCode(IntEnum):
    """
    Turn command codes.

    Names follow the traditional un-trn listing. Comments give the Id
    field and the payload layout.
    """
    # Ship commands
    SHIP_CHANGE_FC = 1                  # sid, 3 bytes FC
    SHIP_CHANGE_SPEED = 2               # sid, 1 word
    SHIP_CHANGE_WAYPOINT = 3            # sid, 2 words
    SHIP_CHANGE_MISSION = 4             # sid, 1 word
    SHIP_CHANGE_PRIMARY_ENEMY = 5       # sid, 1 word
    SHIP_TOW_SHIP = 6                   # sid, 1 word
    SHIP_CHANGE_NAME = 7                # sid, 20 bytes
    SHIP_BEAM_DOWN_CARGO = 8            # sid, 7 words NTDMCS+id
    SHIP_TRANSFER_CARGO = 9             # sid, 7 words NTDMCS+id
    SHIP_INTERCEPT = 10                 # sid, 1 word
    SHIP_CHANGE_NEUTRONIUM = 11         # sid, 1 word
    SHIP_CHANGE_TRITANIUM = 12          # sid, 1 word
    SHIP_CHANGE_DURANIUM = 13           # sid, 1 word
    SHIP_CHANGE_MOLYBDENUM = 14         # sid, 1 word
    SHIP_CHANGE_SUPPLIES = 15           # sid, 1 word
    SHIP_CHANGE_COLONISTS = 16          # sid, 1 word
    SHIP_CHANGE_TORPEDOES = 17          # sid, 1 word
    SHIP_CHANGE_MONEY = 18              # sid, 1 word

    # Planet commands
    PLANET_CHANGE_FC = 21               # pid, 3 bytes
    PLANET_CHANGE_MINES = 22            # pid, 1 word
    PLANET_CHANGE_FACTORIES = 23        # pid, 1 word
    PLANET_CHANGE_DEFENSE = 24          # pid, 1 word
    PLANET_CHANGE_NEUTRONIUM = 25       # pid, 1 dword
    PLANET_CHANGE_TRITANIUM = 26        # pid, 1 dword
    PLANET_CHANGE_DURANIUM = 27         # pid, 1 dword
    PLANET_CHANGE_MOLYBDENUM = 28       # pid, 1 dword
    PLANET_CHANGE_COLONISTS = 29        # pid, 1 dword
    PLANET_CHANGE_SUPPLIES = 30         # pid, 1 dword
    PLANET_CHANGE_MONEY = 31            # pid, 1 dword
    PLANET_COLONIST_TAX = 32            # pid, 1 word
    PLANET_NATIVE_TAX = 33              # pid, 1 word
    PLANET_BUILD_BASE = 34              # pid, no data

    # Starbase commands
    BASE_CHANGE_DEFENSE = 40            # bid, 1 word
    BASE_UPGRADE_ENGINE_TECH = 41       # bid, 1 word
    BASE_UPGRADE_HULL_TECH = 42         # bid, 1 word
    BASE_UPGRADE_WEAPON_TECH = 43       # bid, 1 word
    BASE_BUILD_ENGINES = 44             # bid, 9 words
    BASE_BUILD_HULLS = 45               # bid, 20 words
    BASE_BUILD_WEAPONS = 46             # bid, 10 words
    BASE_BUILD_LAUNCHERS = 47           # bid, 10 words
    BASE_BUILD_TORPEDOES = 48           # bid, 10 words
    BASE_BUILD_FIGHTERS = 49            # bid, 1 word
    BASE_FIX_RECYCLE_SHIP_ID = 50       # bid, 1 word
    BASE_FIX_RECYCLE_SHIP = 51          # bid, 1 word action
    BASE_CHANGE_MISSION = 52            # bid, 1 word
    BASE_BUILD_SHIP = 53                # bid, 7 words
    BASE_UPGRADE_TORP_TECH = 54         # bid, 1 word

    # Rest
    SEND_MESSAGE = 60                   # len, from, to, text
    CHANGE_PASSWORD = 61                # zero, 10 bytes
    SEND_BACK = 62                      # recv, type, size, data


# =============================================================================
# Command Table
# =============================================================================

@dataclass(frozen=True)
class CommandDefinition:
    """
    Definition of a turn command.

    Attributes:
        type: Command category
        size: Payload size if fixed; does not include code and Id words.
            SendMessage and SendBack compute their own size.
        record_index: Byte offset of the overwritten field in the
            *.dat/*.dis object record, 0 if not applicable
        name: Command name, None if undefined
    """
    type: CommandType
    size: int
    record_index: int
    name: Optional[str]


_UNDEFINED = CommandDefinition(CommandType.UNDEFINED, 0, 0, None)

_S = CommandType.SHIP
_P = CommandType.PLANET
_B = CommandType.BASE
_O = CommandType.OTHER

COMMAND_DEFINITIONS: tuple[CommandDefinition, ...] = (
    _UNDEFINED,                                                     # 00
    CommandDefinition(_S,  3,   4, "ShipChangeFc"),                 # 01 -- FCode
    CommandDefinition(_S,  2,   7, "ShipChangeSpeed"),              # 02 -- speed
    CommandDefinition(_S,  4,   9, "ShipChangeWaypoint"),           # 03 -- waypoint
    CommandDefinition(_S,  2,  33, "ShipChangeMission"),            # 04 -- mission
    CommandDefinition(_S,  2,  35, "ShipChangePrimaryEnemy"),       # 05 -- PE
    CommandDefinition(_S,  2,  37, "ShipTowShip"),                  # 06 -- Tow id
    CommandDefinition(_S, 20,  45, "ShipChangeName"),               # 07 -- Name
    CommandDefinition(_S, 14,  75, "ShipBeamDownCargo"),            # 08 -- unload
    CommandDefinition(_S, 14,  89, "ShipTransferCargo"),            # 09 -- transfer
    CommandDefinition(_S,  2, 103, "ShipIntercept"),                # 10 -- Intercept id
    CommandDefinition(_S,  2,  65, "ShipChangeNeutronium"),         # 11 -- Neutro
    CommandDefinition(_S,  2,  67, "ShipChangeTritanium"),          # 12 -- Trit
    CommandDefinition(_S,  2,  69, "ShipChangeDuranium"),           # 13 -- Dur
    CommandDefinition(_S,  2,  71, "ShipChangeMolybdenum"),         # 14 -- Moly
    CommandDefinition(_S,  2,  73, "ShipChangeSupplies"),           # 15 -- Sup
    CommandDefinition(_S,  2,  43, "ShipChangeColonists"),          # 16 -- Clans
    CommandDefinition(_S,  2,  29, "ShipChangeTorpedoes"),          # 17 -- T/F
    CommandDefinition(_S,  2, 105, "ShipChangeMoney"),              # 18 -- mc
    _UNDEFINED,                                                     # 19
    _UNDEFINED,                                                     # 20
    CommandDefinition(_P,  3,   4, "PlanetChangeFc"),               # 21 -- FCode
    CommandDefinition(_P,  2,   7, "PlanetChangeMines"),            # 22 -- Mines
    CommandDefinition(_P,  2,   9, "PlanetChangeFactories"),        # 23 -- Factories
    CommandDefinition(_P,  2,  11, "PlanetChangeDefense"),          # 24 -- Defense
    CommandDefinition(_P,  4,  13, "PlanetChangeNeutronium"),       # 25 -- N
    CommandDefinition(_P,  4,  17, "PlanetChangeTritanium"),        # 26 -- T
    CommandDefinition(_P,  4,  21, "PlanetChangeDuranium"),         # 27 -- D
    CommandDefinition(_P,  4,  25, "PlanetChangeMolybdenum"),       # 28 -- M
    CommandDefinition(_P,  4,  29, "PlanetChangeColonists"),        # 29 -- Clans
    CommandDefinition(_P,  4,  33, "PlanetChangeSupplies"),         # 30 -- Sup
    CommandDefinition(_P,  4,  37, "PlanetChangeMoney"),            # 31 -- mc
    CommandDefinition(_P,  2,  65, "PlanetColonistTax"),            # 32 -- ColTax
    CommandDefinition(_P,  2,  67, "PlanetNativeTax"),              # 33 -- NatTax
    CommandDefinition(_P,  0,  83, "PlanetBuildBase"),              # 34 -- build base
    _UNDEFINED,                                                     # 35
    _UNDEFINED,                                                     # 36
    _UNDEFINED,                                                     # 37
    _UNDEFINED,                                                     # 38
    _UNDEFINED,                                                     # 39
    CommandDefinition(_B,  2,   4, "BaseChangeDefense"),            # 40 -- Def
    CommandDefinition(_B,  2,   8, "BaseUpgradeEngineTech"),        # 41 -- Eng Tech
    CommandDefinition(_B,  2,  10, "BaseUpgradeHullTech"),          # 42 -- Hull Tech
    CommandDefinition(_B,  2,  12, "BaseUpgradeWeaponTech"),        # 43 -- Beam Tech
    CommandDefinition(_B, 18,  16, "BaseBuildEngines"),             # 44 -- Eng Storage
    CommandDefinition(_B, 40,  34, "BaseBuildHulls"),               # 45 -- Hull Storage
    CommandDefinition(_B, 20,  74, "BaseBuildWeapons"),             # 46 -- Beam Storage
    CommandDefinition(_B, 20,  94, "BaseBuildLaunchers"),           # 47 -- Launcher Storage
    CommandDefinition(_B, 20, 114, "BaseBuildTorpedoes"),           # 48 -- Torp Storage
    CommandDefinition(_B,  2, 134, "BaseBuildFighters"),            # 49 -- Ftr
    CommandDefinition(_B,  2, 136, "BaseFixRecycleShipId"),         # 50 -- Fix/Recycle Id
    CommandDefinition(_B,  2, 138, "BaseFixRecycleShip"),           # 51 -- Fix/Recycle
    CommandDefinition(_B,  2, 140, "BaseChangeMission"),            # 52 -- Mission
    CommandDefinition(_B, 14, 142, "BaseBuildShip"),                # 53 -- Build order
    CommandDefinition(_B,  2,  14, "BaseUpgradeTorpTech"),          # 54 -- Torp Tech
    _UNDEFINED,                                                     # 55
    _UNDEFINED,                                                     # 56
    _UNDEFINED,                                                     # 57
    _UNDEFINED,                                                     # 58
    _UNDEFINED,                                                     # 59
    CommandDefinition(_O,  0,   0, "SendMessage"),                  # 60 -- Message
    CommandDefinition(_O, 10,   0, "ChangePassword"),               # 61 -- Password
    CommandDefinition(_O,  0,   0, "SendBack"),                     # 62 -- SendBack
)


def lookup(code: int) -> CommandDefinition:
    """
    Look up a command definition.

    Codes outside the table yield the undefined definition rather
    than an error.
    """
    if 0 <= code < len(COMMAND_DEFINITIONS):
        return COMMAND_DEFINITIONS[code]
    return _UNDEFINED


def get_command_code_type(code: int) -> CommandType:
    """Get the category of a command code."""
    return lookup(code).type


def get_command_code_name(code: int) -> Optional[str]:
    """Get the name of a command code; None if invalid or unknown."""
    return lookup(code).name


def get_command_code_record_index(code: int) -> int:
    """Get the *.dat record offset a command code overwrites; 0 if not applicable."""
    return lookup(code).record_index


# =============================================================================
# Record Codec
# =============================================================================
# These functions do not bounds-check beyond what struct does; the turn
# file validates every command position before using them.

def decode_code(data: bytes, offset: int) -> int:
    """Read the command code of the record at offset."""
    return struct.unpack_from("<h", data, offset)[0]


def decode_id(data: bytes, offset: int) -> int:
    """Read the Id field of the record at offset."""
    return struct.unpack_from("<h", data, offset + 2)[0]


def compute_length(code: int, data: bytes, offset: int) -> Optional[int]:
    """
    Compute the payload length of the record at offset.

    Args:
        code: Command code of the record
        data: Buffer containing the record
        offset: Position of the record (at its code word)

    Returns:
        Payload length (excluding code and Id words), or None if the
        command is not known
    """
    if code == CommandCode.SEND_MESSAGE:
        # Sender, receiver (4 bytes), plus text length in the Id slot
        return decode_id(data, offset) + 4
    if code == CommandCode.SEND_BACK:
        # Type, size (4 bytes), plus data size
        return struct.unpack_from("<h", data, offset + 6)[0] + 4

    definition = lookup(code)
    if definition.type == CommandType.UNDEFINED:
        return None
    return definition.size


def encode_command(code: int, command_id: int, payload: bytes = b"") -> bytes:
    """
    Encode a command record: code, Id, then the payload verbatim.

    No length prefix is added; fixed-size commands have an implicit
    length, variable ones embed it in their payload layout.
    """
    return struct.pack("<hh", _to_int16(code), _to_int16(command_id)) + bytes(payload)


def _to_int16(value: int) -> int:
    """Wrap a value into the signed 16-bit range."""
    value &= 0xFFFF
    return value - 0x10000 if value >= 0x8000 else value


# =============================================================================
# Canonical Order
# =============================================================================

def command_sort_key(data: bytes, offset: int) -> tuple[int, int, int]:
    """
    Sort key establishing the canonical command order.

    Commands are grouped by category; within ship, planet, and base
    commands they are ordered by Id, then code. "Other" commands are
    ordered by code only. Use with a stable sort.
    """
    code = decode_code(data, offset)
    command_type = get_command_code_type(code)
    if command_type == CommandType.OTHER:
        return (command_type, 0, code)
    return (command_type, decode_id(data, offset), code)


# =============================================================================
# Message Text
# =============================================================================

def encode_message_text(text: str, charset: str) -> bytes:
    """
    Encode message text for SendMessage.

    Lines are separated by carriage returns and every byte is shifted
    by 13, as hosts expect.
    """
    raw = "\r".join(text.splitlines()).encode(charset, errors="replace")
    return bytes((b + 13) & 0xFF for b in raw)


def decode_message_text(data: bytes, charset: str) -> list[str]:
    """Decode SendMessage text into its lines."""
    raw = bytes((b - 13) & 0xFF for b in data)
    text = raw.decode(charset, errors="replace")
    lines = text.split("\r")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


# =============================================================================
# Payload Layouts
# =============================================================================
# Field layout of fixed-size payloads, used for listings.
# Kinds: "i16", "i32", or "sN" for an N-byte fixed string.

_CARGO_FIELDS = (
    ("Neutronium", "i16"), ("Tritanium", "i16"), ("Duranium", "i16"),
    ("Molybdenum", "i16"), ("Clans", "i16"), ("Supplies", "i16"),
    ("Target Id", "i16"),
)


def _array(label: str, count: int) -> tuple[tuple[str, str], ...]:
    return tuple((f"{label}{i + 1}", "i16") for i in range(count))


PAYLOAD_LAYOUTS: dict[int, tuple[tuple[str, str], ...]] = {
    CommandCode.SHIP_CHANGE_FC: (("FCode", "s3"),),
    CommandCode.SHIP_CHANGE_SPEED: (("Speed", "i16"),),
    CommandCode.SHIP_CHANGE_WAYPOINT: (("WaypointDX", "i16"), ("WaypointDY", "i16")),
    CommandCode.SHIP_CHANGE_MISSION: (("Mission", "i16"),),
    CommandCode.SHIP_CHANGE_PRIMARY_ENEMY: (("Player", "i16"),),
    CommandCode.SHIP_TOW_SHIP: (("Towee Id", "i16"),),
    CommandCode.SHIP_CHANGE_NAME: (("Name", "s20"),),
    CommandCode.SHIP_BEAM_DOWN_CARGO: _CARGO_FIELDS,
    CommandCode.SHIP_TRANSFER_CARGO: _CARGO_FIELDS,
    CommandCode.SHIP_INTERCEPT: (("Target Id", "i16"),),
    CommandCode.SHIP_CHANGE_NEUTRONIUM: (("Neutronium", "i16"),),
    CommandCode.SHIP_CHANGE_TRITANIUM: (("Tritanium", "i16"),),
    CommandCode.SHIP_CHANGE_DURANIUM: (("Duranium", "i16"),),
    CommandCode.SHIP_CHANGE_MOLYBDENUM: (("Molybdenum", "i16"),),
    CommandCode.SHIP_CHANGE_SUPPLIES: (("Supplies", "i16"),),
    CommandCode.SHIP_CHANGE_COLONISTS: (("Clans", "i16"),),
    CommandCode.SHIP_CHANGE_TORPEDOES: (("Ammo", "i16"),),
    CommandCode.SHIP_CHANGE_MONEY: (("Money", "i16"),),
    CommandCode.PLANET_CHANGE_FC: (("FCode", "s3"),),
    CommandCode.PLANET_CHANGE_MINES: (("Mines", "i16"),),
    CommandCode.PLANET_CHANGE_FACTORIES: (("Factories", "i16"),),
    CommandCode.PLANET_CHANGE_DEFENSE: (("Defense", "i16"),),
    CommandCode.PLANET_CHANGE_NEUTRONIUM: (("Neutronium", "i32"),),
    CommandCode.PLANET_CHANGE_TRITANIUM: (("Tritanium", "i32"),),
    CommandCode.PLANET_CHANGE_DURANIUM: (("Duranium", "i32"),),
    CommandCode.PLANET_CHANGE_MOLYBDENUM: (("Molybdenum", "i32"),),
    CommandCode.PLANET_CHANGE_COLONISTS: (("Clans", "i32"),),
    CommandCode.PLANET_CHANGE_SUPPLIES: (("Supplies", "i32"),),
    CommandCode.PLANET_CHANGE_MONEY: (("Money", "i32"),),
    CommandCode.PLANET_COLONIST_TAX: (("Tax Rate", "i16"),),
    CommandCode.PLANET_NATIVE_TAX: (("Tax Rate", "i16"),),
    CommandCode.PLANET_BUILD_BASE: (),
    CommandCode.BASE_CHANGE_DEFENSE: (("Defense", "i16"),),
    CommandCode.BASE_UPGRADE_ENGINE_TECH: (("Tech", "i16"),),
    CommandCode.BASE_UPGRADE_HULL_TECH: (("Tech", "i16"),),
    CommandCode.BASE_UPGRADE_WEAPON_TECH: (("Tech", "i16"),),
    CommandCode.BASE_BUILD_ENGINES: _array("Engine", 9),
    CommandCode.BASE_BUILD_HULLS: _array("Hull", 20),
    CommandCode.BASE_BUILD_WEAPONS: _array("Beam", 10),
    CommandCode.BASE_BUILD_LAUNCHERS: _array("Launcher", 10),
    CommandCode.BASE_BUILD_TORPEDOES: _array("Torp", 10),
    CommandCode.BASE_BUILD_FIGHTERS: (("Fighters", "i16"),),
    CommandCode.BASE_FIX_RECYCLE_SHIP_ID: (("Ship Id", "i16"),),
    CommandCode.BASE_FIX_RECYCLE_SHIP: (("Action", "i16"),),
    CommandCode.BASE_CHANGE_MISSION: (("Mission", "i16"),),
    CommandCode.BASE_BUILD_SHIP: (
        ("Hull Type", "i16"), ("Engine Type", "i16"), ("Beam Type", "i16"), ("Beam Count", "i16"),
        ("Torp Type", "i16"), ("Torp Count", "i16"), ("Unused", "i16"),
    ),
    CommandCode.BASE_UPGRADE_TORP_TECH: (("Tech", "i16"),),
}


def decode_payload(code: int, payload: bytes, charset: str) -> list[tuple[str, int | str]]:
    """
    Decode a fixed-size payload into (label, value) pairs.

    Returns an empty list for commands without a known layout. Fields
    that extend past the payload are left out.
    """
    result: list[tuple[str, int | str]] = []
    position = 0
    for label, kind in PAYLOAD_LAYOUTS.get(code, ()):
        if kind == "i16":
            size = 2
        elif kind == "i32":
            size = 4
        else:
            size = int(kind[1:])
        if position + size > len(payload):
            break
        chunk = payload[position:position + size]
        if kind == "i16":
            value: int | str = struct.unpack("<h", chunk)[0]
        elif kind == "i32":
            value = struct.unpack("<i", chunk)[0]
        else:
            value = chunk.rstrip(b" \0").decode(charset, errors="replace")
        result.append((label, value))
        position += size
    return result
