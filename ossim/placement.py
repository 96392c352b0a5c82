from __future__ import annotations

import math
from typing import Dict, List, Optional, Sequence, Tuple, Type

from .errors import InvalidArgumentError
from .models import MemoryBlock

PAGE_SIZE_KB = 32


class Placement:
    """
    Strategy for choosing where an allocation goes.

    Partition strategies pick a single FREE block via :meth:`select`; the
    paging strategy instead produces a page plan spanning several blocks.
    """

    name = ""
    paged = False

    def select(self, blocks: Sequence[MemoryBlock], size: int) -> Optional[int]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class FirstFit(Placement):
    name = "First Fit"

    def select(self, blocks: Sequence[MemoryBlock], size: int) -> Optional[int]:
        for index, block in enumerate(blocks):
            if block.can_fit(size):
                return index
        return None


class BestFit(Placement):
    """
    Smallest leftover wins; the first block found wins ties.
    """

    name = "Best Fit"

    def select(self, blocks: Sequence[MemoryBlock], size: int) -> Optional[int]:
        best: Optional[int] = None
        best_leftover = 0
        for index, block in enumerate(blocks):
            if not block.can_fit(size):
                continue
            leftover = block.size - size
            if best is None or leftover < best_leftover:
                best, best_leftover = index, leftover
        return best


class WorstFit(Placement):
    """
    Largest leftover wins; the first block found wins ties.
    """

    name = "Worst Fit"

    def select(self, blocks: Sequence[MemoryBlock], size: int) -> Optional[int]:
        worst: Optional[int] = None
        worst_leftover = -1
        for index, block in enumerate(blocks):
            if not block.can_fit(size):
                continue
            leftover = block.size - size
            if leftover > worst_leftover:
                worst, worst_leftover = index, leftover
        return worst


class Paging(Placement):
    """
    Fixed-size pages carved out of FREE blocks in list order.
    """

    name = "Paging"
    paged = True

    def __init__(self, page_size: int = PAGE_SIZE_KB) -> None:
        if page_size <= 0:
            raise InvalidArgumentError(f"page size must be positive, got {page_size}")
        self.page_size = page_size

    def pages_needed(self, size: int) -> int:
        return math.ceil(size / self.page_size)

    def plan(self, blocks: Sequence[MemoryBlock], size: int) -> Optional[List[Tuple[int, int]]]:
        """
        Return ``(block index, pages taken)`` pairs covering the request, or
        None if the free blocks cannot supply enough whole pages. Nothing is
        mutated here.
        """
        needed = self.pages_needed(size)
        plan: List[Tuple[int, int]] = []
        found = 0
        for index, block in enumerate(blocks):
            if found >= needed:
                break
            if not block.is_free:
                continue
            available = block.size // self.page_size
            if available == 0:
                continue
            take = min(available, needed - found)
            plan.append((index, take))
            found += take

        if found < needed:
            return None
        return plan


PLACEMENTS: Dict[str, Type[Placement]] = {
    "first_fit": FirstFit,
    "best_fit": BestFit,
    "worst_fit": WorstFit,
    "paging": Paging,
}


def make_placement(name: str) -> Placement:
    key = name.lower().replace("-", "_")
    if key not in PLACEMENTS:
        raise InvalidArgumentError(f"Unknown allocation algorithm '{name}'")
    return PLACEMENTS[key]()
