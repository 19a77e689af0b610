"""
trnkit - Configuration
======================

Settings that control how turn files are created and parsed.
Configuration can come from:
- Default values (defined here)
- Environment variables

The defaults match the DOS/Winplan clients: CP437 text encoding,
Winplan sub-version 1 (file format "3.501"), and a command ceiling
far above anything a real host accepts (THost rejects more than 5000).
"""

from dataclasses import dataclass
import codecs
import logging
import os

from trnkit.trn.structures import Feature

logger = logging.getLogger(__name__)


# Default character set for strings stored in turn files
DEFAULT_CHARSET = "cp437"

# Winplan sub-version written by default ("VER3.501")
DEFAULT_VERSION = 1

# Maximum plausible command count.
# Object commands alone can reach 18*999 + 15*500 + 15*500 = 32982; the
# ceiling mainly guards the directory size computation against garbage.
MAX_COMMANDS = 1_000_000


@dataclass
class TurnConfig:
    """
    Configuration for turn file handling.

    Attributes:
        charset: Python codec name used to encode/decode strings stored
            in turn files (friendly codes, names, registration lines)
        default_version: Winplan sub-version for newly created turns (0..99)
        max_commands: Upper bound accepted for the header's command count
        default_features: Feature set of newly created turns
    """

    charset: str = DEFAULT_CHARSET
    default_version: int = DEFAULT_VERSION
    max_commands: int = MAX_COMMANDS
    default_features: Feature = Feature.WINPLAN

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        codecs.lookup(self.charset)
        if not 0 <= self.default_version <= 99:
            raise ValueError(f"Sub-version must be 0..99, got {self.default_version}")
        if self.max_commands < 0:
            raise ValueError(f"Command ceiling must not be negative, got {self.max_commands}")

    @classmethod
    def from_env(cls) -> "TurnConfig":
        """
        Create TurnConfig from environment variables.

        Environment variables (all optional):
            TRNKIT_CHARSET: Codec name (e.g., "cp437", "latin-1")
            TRNKIT_VERSION: Winplan sub-version (integer 0..99)
            TRNKIT_MAX_COMMANDS: Command count ceiling (integer)

        Returns:
            TurnConfig with values from environment variables
        """
        config = cls()

        if charset := os.environ.get("TRNKIT_CHARSET"):
            try:
                codecs.lookup(charset)
                config.charset = charset
            except LookupError:
                logger.warning(f"Ignoring unknown TRNKIT_CHARSET {charset!r}")

        if version := os.environ.get("TRNKIT_VERSION"):
            try:
                value = int(version)
                if 0 <= value <= 99:
                    config.default_version = value
                else:
                    logger.warning(f"Ignoring out-of-range TRNKIT_VERSION {value}")
            except ValueError:
                logger.warning(f"Ignoring invalid TRNKIT_VERSION {version!r}")

        if max_commands := os.environ.get("TRNKIT_MAX_COMMANDS"):
            try:
                config.max_commands = max(0, int(max_commands))
            except ValueError:
                logger.warning(f"Ignoring invalid TRNKIT_MAX_COMMANDS {max_commands!r}")

        return config
