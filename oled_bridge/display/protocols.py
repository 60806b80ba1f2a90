"""
Display Wire Protocol

Newline-terminated ASCII commands understood by the OLED controller
sketch. The device may print replies; they are informational only and no
acknowledgement is expected.
"""

from typing import Dict

# =============================================================================
# Link defaults
# =============================================================================

DEFAULT_BAUD_RATE = 9600
DEFAULT_DISPLAY_WIDTH = 128
DEFAULT_DISPLAY_HEIGHT = 56

LINE_ENDING = '\n'

# =============================================================================
# Timing (seconds)
# =============================================================================

# Controller reboots when the port opens; it ignores input until boot completes.
BOOT_SETTLE_DELAY = 2.0

# Minimum gap after each accepted write before the next command.
COMMAND_SETTLE_DELAY = 0.1

# Per-command write retries: total attempts and linear backoff unit.
WRITE_MAX_ATTEMPTS = 3
WRITE_RETRY_BASE_DELAY = 0.5

# Fixed wait between reopen attempts after the link drops.
RECONNECT_INTERVAL = 5.0

# =============================================================================
# Command vocabulary
# =============================================================================

CMD_RESET = 'reset'
CMD_CLEAR = 'clear'
CMD_HELP = 'help'
CMD_LOGO = 'logo'
CMD_WEATHER = 'weather'
CMD_DIRECTIONS = 'directions'
CMD_SHOW_INDEX = 'show_index'

PREFIX_TEXT_XY = 'textxy'
PREFIX_TEXT = 'text'
PREFIX_MULTILINE = 'multiline'
PREFIX_SCROLL = 'scroll'

SIMPLE_COMMANDS = frozenset({
    CMD_RESET,
    CMD_CLEAR,
    CMD_HELP,
    CMD_LOGO,
    CMD_WEATHER,
    CMD_DIRECTIONS,
    CMD_SHOW_INDEX,
})

PAYLOAD_PREFIXES = frozenset({
    PREFIX_TEXT_XY,
    PREFIX_TEXT,
    PREFIX_MULTILINE,
    PREFIX_SCROLL,
})

# Glyph escapes the sketch expands inside text payloads.
SYMBOL_ESCAPES: Dict[str, str] = {
    'degree': '\\deg',
    'up': '\\up',
    'down': '\\down',
    'left': '\\left',
    'right': '\\right',
}

# Device reset sequence run after every open
RESET_SEQUENCE = (CMD_RESET, CMD_CLEAR)


# =============================================================================
# Builders
# =============================================================================

def escape_newlines(text: str) -> str:
    """Replace real line breaks with the literal ``\\n`` the sketch splits on."""
    return text.replace('\r\n', '\n').replace('\n', '\\n')


def build_text_xy(x: int, y: int, text: str) -> str:
    return f"{PREFIX_TEXT_XY}:{x},{y},{text}"


def build_text(text: str) -> str:
    return f"{PREFIX_TEXT}:{text}"


def build_multiline(text: str) -> str:
    return f"{PREFIX_MULTILINE}:{text}"


def build_scroll(text: str) -> str:
    return f"{PREFIX_SCROLL}:{text}"


def is_known_command(command: str) -> bool:
    """True if ``command`` uses the vocabulary above."""
    if command in SIMPLE_COMMANDS:
        return True
    prefix, sep, _ = command.partition(':')
    return bool(sep) and prefix in PAYLOAD_PREFIXES


def validate_command(command: str) -> str:
    """Return ``command`` unchanged or raise ValueError if it cannot go on one line."""
    if not command:
        raise ValueError("Command must not be empty")
    if '\n' in command or '\r' in command:
        raise ValueError(f"Command contains a line break: {command!r}")
    return command
