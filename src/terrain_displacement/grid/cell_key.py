"""
Packed identifiers for ground cells.

A cell is addressed by two signed 32-bit integers. Both are packed into a
single unsigned 64-bit value (x in the low word, y in the high word) which
serves as the hash and makes keys cheap to compare.
"""

from __future__ import annotations

from functools import total_ordering

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

_LOW_MASK = 0xFFFFFFFF


def _to_signed32(value: int) -> int:
    """Reinterpret the low 32 bits of ``value`` as a signed integer."""
    value &= _LOW_MASK
    return value - (1 << 32) if value & 0x80000000 else value


@total_ordering
class CellKey:
    """
    Identifier of a ground cell at integer grid coordinates (x, y).

    Keys compare in row-major order (by y, then x), which is the order in
    which raster rows are written.

    Example:
        >>> key = CellKey(-1, 3)
        >>> key.x, key.y
        (-1, 3)
        >>> CellKey.from_packed(key.key) == key
        True
    """

    __slots__ = ("_key",)

    def __init__(self, x: int, y: int):
        x = int(x)
        y = int(y)
        if not (INT32_MIN <= x <= INT32_MAX and INT32_MIN <= y <= INT32_MAX):
            raise ValueError(
                f"Cell coordinates ({x}, {y}) outside the signed 32-bit range"
            )
        self._key = (x & _LOW_MASK) | ((y & _LOW_MASK) << 32)

    @classmethod
    def make(cls, x: int, y: int) -> "CellKey":
        return cls(x, y)

    @classmethod
    def from_packed(cls, key: int) -> "CellKey":
        """Rebuild a key from its packed 64-bit value."""
        key = int(key)
        if not 0 <= key < (1 << 64):
            raise ValueError(f"Packed key {key} is not an unsigned 64-bit value")
        return cls(_to_signed32(key), _to_signed32(key >> 32))

    @property
    def x(self) -> int:
        return _to_signed32(self._key)

    @property
    def y(self) -> int:
        return _to_signed32(self._key >> 32)

    @property
    def key(self) -> int:
        return self._key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CellKey):
            return NotImplemented
        return self._key == other._key

    def __lt__(self, other: "CellKey") -> bool:
        if not isinstance(other, CellKey):
            return NotImplemented
        return (self.y, self.x) < (other.y, other.x)

    def __hash__(self) -> int:
        return hash(self._key)

    def __repr__(self) -> str:
        return f"CellKey(x={self.x}, y={self.y})"
