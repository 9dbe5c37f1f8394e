"""
Scoped native memory for a single call.
"""

import ctypes
from typing import Optional, Sequence, Tuple

_DOUBLE_SIZE = ctypes.sizeof(ctypes.c_double)

DoublePointer = ctypes.POINTER(ctypes.c_double)


class ScopedArena:
    """
    One contiguous block of C doubles owned by a single native call.

    Regions are handed out front to back by ``allocate``. The block is
    released by ``close``, which is called exactly once by the context
    manager whether the call returned or raised. Arenas are not shared
    between calls or threads.

    Example:
        >>> with ScopedArena(3) as arena:
        ...     ptr, length = arena.allocate([1.0, 5.0, 10.0])
    """

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError(f"Arena capacity must be non-negative, got {capacity}")
        self.capacity = capacity
        self._buffer: Optional[ctypes.Array] = (ctypes.c_double * capacity)() if capacity else None
        self._used = 0
        self._closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def used(self) -> int:
        """Number of elements handed out so far."""
        return self._used

    def allocate(self, values: Sequence[float]) -> Tuple[Optional[ctypes._Pointer], int]:
        """
        Copy ``values`` into the next free region.

        Args:
            values: Floats, or a buffer of contiguous C doubles.

        Returns:
            (pointer, length) for the region; the pointer is None (NULL) for
            an empty array.

        Raises:
            ValueError: If the arena is closed or has no room left.
        """
        if self._closed:
            raise ValueError("Allocation from a closed arena")

        length = len(values)
        if length == 0:
            return None, 0
        if self._used + length > self.capacity:
            raise ValueError(
                f"Arena overflow: {length} elements requested, "
                f"{self.capacity - self._used} of {self.capacity} free"
            )

        start = self._used
        address = ctypes.addressof(self._buffer) + start * _DOUBLE_SIZE
        if isinstance(values, memoryview):
            ctypes.memmove(address, values.tobytes(), length * _DOUBLE_SIZE)
        else:
            self._buffer[start:start + length] = values
        self._used += length
        return ctypes.cast(address, DoublePointer), length

    def close(self) -> None:
        """Release the native block."""
        if not self._closed:
            self._buffer = None
            self._closed = True
