"""
Helpers for splitting work into fixed-size groups.
"""


def chunked(items, size):
    """
    Split a sequence into contiguous slices of at most ``size`` items.

    Args:
        items: Sequence to split (list, tuple, ...)
        size: Maximum slice length, must be positive

    Returns:
        List of slices, in input order
    """
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return [items[i:i + size] for i in range(0, len(items), size)]
