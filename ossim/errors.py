from __future__ import annotations


class InvalidArgumentError(ValueError):
    """
    Raised for malformed arguments: non-positive sizes, quantum or total
    memory, and unknown algorithm names. The simulator instance stays usable.
    """
