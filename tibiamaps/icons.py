"""Marker icon ids as the client stores them, and the names used in JSON."""

from types import MappingProxyType

BY_NAME = MappingProxyType({
    'checkmark': 0x00,
    '?': 0x01,
    '!': 0x02,
    'star': 0x03,
    'crossmark': 0x04,
    'cross': 0x05,
    'mouth': 0x06,
    'spear': 0x07,
    'sword': 0x08,
    'flag': 0x09,
    'lock': 0x0A,
    'bag': 0x0B,
    'skull': 0x0C,
    '$': 0x0D,
    'red up': 0x0E,
    'red down': 0x0F,
    'red right': 0x10,
    'red left': 0x11,
    'up': 0x12,
    'down': 0x13,
})

BY_ID = MappingProxyType({icon_id: name for name, icon_id in BY_NAME.items()})


def icon_name(icon_id: int) -> str | int:
    """Name for a known icon id; unknown ids pass through as integers."""
    return BY_ID.get(icon_id, icon_id)


def icon_id(value: str | int) -> int:
    if isinstance(value, bool):
        raise ValueError(f'Invalid marker icon: {value!r}')
    if isinstance(value, int):
        return value
    if value in BY_NAME:
        return BY_NAME[value]
    if isinstance(value, str) and value.isdigit():
        return int(value)
    raise ValueError(f'Unknown marker icon: {value!r}')
