"""Texture dimension and encoder thread-count helpers."""

import math

# Dimensions above this may not render on some mobile devices.
MAX_RECOMMENDED_DIMENSION = 4096

# Block-compressed formats need at least one 4x4 block per dimension.
MIN_DIMENSION = 4


def is_power_of_two(value: int) -> bool:
    """Return True for 0, 1, 2 and every exact power of two."""
    if value <= 2:
        return True
    return (value & (value - 1)) == 0 and value != 0


def floor_power_of_two(value: int) -> int:
    """Return the largest power of two <= value."""
    return int(2 ** math.floor(math.log2(value)))


def ceil_power_of_two(value: int) -> int:
    """Return the smallest power of two >= value."""
    return int(2 ** math.ceil(math.log2(value)))


def preferred_power_of_two(value: int) -> int:
    """Round to the closer power of two; equal distances round up.

    ``6`` is two away from both 4 and 8 and becomes 8.
    """
    if value <= MIN_DIMENSION:
        return MIN_DIMENSION
    lo = floor_power_of_two(value)
    hi = ceil_power_of_two(value)
    if hi - value > value - lo:
        return lo
    return hi


def is_multiple_of_four(value: int) -> bool:
    return value % 4 == 0


def ceil_multiple_of_four(value: int) -> int:
    """Round up to a multiple of four, never below 4."""
    if value <= MIN_DIMENSION:
        return MIN_DIMENSION
    if value % 4:
        return value + 4 - value % 4
    return value


def thread_count(cpu_count: int, texture_count: int) -> int:
    """Threads for one toktx process when many run side by side.

    Wide batches of small textures shouldn't each claim every core; a single
    texture gets them all. Never fewer than two.
    """
    texture_count = max(int(texture_count), 1)
    return max(2, min(cpu_count, (3 * cpu_count) // texture_count))
