"""Deterministic family colors."""

from famgraph.config import FAMILY_COLORS


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _string_hash(text: str) -> int:
    """Classic ``hash * 31 + char`` string hash with 32-bit shift semantics.

    Iterates UTF-16 code units so the palette index for a given key stays the
    same as the one the web editor assigns.
    """
    hash_value = 0
    units = text.encode("utf-16-le")
    for i in range(0, len(units), 2):
        code = int.from_bytes(units[i:i + 2], "little")
        hash_value = code + (_to_int32(_to_int32(hash_value) << 5) - hash_value)
    return hash_value


def get_family_color(family_id: str | None) -> str:
    """Pick a palette color for a family id; the same id always gets the same color."""
    return FAMILY_COLORS[abs(_string_hash(family_id or "")) % len(FAMILY_COLORS)]
