"""Remote actions and their Samsung key codes.

TVCommand is the closed set of actions the remote exposes; KEY_CODES maps
each one to exactly one key code understood by the TV's control channel.
"""

from enum import Enum
from typing import Optional


class TVCommand(Enum):
    """Abstract remote action."""
    POWER_TOGGLE = "power_toggle"
    HOME = "home"
    BACK = "back"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    SELECT = "select"
    VOLUME_UP = "volume_up"
    VOLUME_DOWN = "volume_down"
    MUTE = "mute"
    PLAY_PAUSE = "play_pause"
    NEXT = "next"
    PREVIOUS = "previous"


# Power
KEY_POWER = "KEY_POWER"

# Navigation
KEY_HOME = "KEY_HOME"
KEY_RETURN = "KEY_RETURN"
KEY_UP = "KEY_UP"
KEY_DOWN = "KEY_DOWN"
KEY_LEFT = "KEY_LEFT"
KEY_RIGHT = "KEY_RIGHT"
KEY_ENTER = "KEY_ENTER"

# Volume
KEY_VOLUP = "KEY_VOLUP"
KEY_VOLDOWN = "KEY_VOLDOWN"
KEY_MUTE = "KEY_MUTE"

# Playback
KEY_PLAY = "KEY_PLAY"
KEY_FF = "KEY_FF"
KEY_REWIND = "KEY_REWIND"


KEY_CODES = {
    TVCommand.POWER_TOGGLE: KEY_POWER,
    TVCommand.HOME: KEY_HOME,
    TVCommand.BACK: KEY_RETURN,
    TVCommand.UP: KEY_UP,
    TVCommand.DOWN: KEY_DOWN,
    TVCommand.LEFT: KEY_LEFT,
    TVCommand.RIGHT: KEY_RIGHT,
    TVCommand.SELECT: KEY_ENTER,
    TVCommand.VOLUME_UP: KEY_VOLUP,
    TVCommand.VOLUME_DOWN: KEY_VOLDOWN,
    TVCommand.MUTE: KEY_MUTE,
    TVCommand.PLAY_PAUSE: KEY_PLAY,
    TVCommand.NEXT: KEY_FF,
    TVCommand.PREVIOUS: KEY_REWIND,
}

# Key name mapping for CLI
COMMAND_NAME_MAP = {
    "power": TVCommand.POWER_TOGGLE,
    "home": TVCommand.HOME,
    "back": TVCommand.BACK,
    "return": TVCommand.BACK,
    "up": TVCommand.UP,
    "down": TVCommand.DOWN,
    "left": TVCommand.LEFT,
    "right": TVCommand.RIGHT,
    "ok": TVCommand.SELECT,
    "enter": TVCommand.SELECT,
    "select": TVCommand.SELECT,
    "volumeup": TVCommand.VOLUME_UP,
    "volup": TVCommand.VOLUME_UP,
    "vol+": TVCommand.VOLUME_UP,
    "volumedown": TVCommand.VOLUME_DOWN,
    "voldown": TVCommand.VOLUME_DOWN,
    "vol-": TVCommand.VOLUME_DOWN,
    "mute": TVCommand.MUTE,
    "play": TVCommand.PLAY_PAUSE,
    "pause": TVCommand.PLAY_PAUSE,
    "playpause": TVCommand.PLAY_PAUSE,
    "next": TVCommand.NEXT,
    "ff": TVCommand.NEXT,
    "previous": TVCommand.PREVIOUS,
    "prev": TVCommand.PREVIOUS,
    "rewind": TVCommand.PREVIOUS,
}


def get_key_code(command: TVCommand) -> str:
    """Get the key code sent to the TV for a command."""
    return KEY_CODES[command]


def get_command(name: str) -> Optional[TVCommand]:
    """Get a command from a friendly name.

    Args:
        name: Command name (e.g., 'up', 'volup', 'power', 'volume_up')

    Returns:
        TVCommand, or None if the name is unknown
    """
    name_lower = name.lower().strip()

    if name_lower in COMMAND_NAME_MAP:
        return COMMAND_NAME_MAP[name_lower]

    try:
        return TVCommand(name_lower)
    except ValueError:
        pass

    # Accept raw key codes such as KEY_VOLUP
    for command, code in KEY_CODES.items():
        if code == name.upper().strip():
            return command

    return None
