from __future__ import annotations

import copy
import logging
import threading
from typing import List, Optional, Union

from .errors import InvalidArgumentError
from .models import MemoryBlock, MemoryStats, Registry
from .placement import Paging, Placement, make_placement

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_KB = 1024
SYSTEM_SHARE = 10  # one tenth of memory is reserved for the system

PlacementSpec = Union[str, Placement]


def _coerce_placement(algorithm: PlacementSpec) -> Placement:
    if isinstance(algorithm, Placement):
        return algorithm
    return make_placement(algorithm)


class Allocator:
    """
    Memory allocation simulator.

    Memory is an ordered list of blocks whose sizes always sum to the total.
    In partition modes list order is address order and freeing coalesces
    neighbouring FREE blocks. Paging carves fixed-size pages out of FREE
    blocks and appends them at the tail of the list.

    Every public operation either completes or leaves the layout untouched.
    """

    def __init__(self, total_kb: int = DEFAULT_TOTAL_KB, algorithm: PlacementSpec = "first_fit") -> None:
        self._lock = threading.RLock()
        self._placement = _coerce_placement(algorithm)
        self._blocks: List[MemoryBlock] = []
        self._registry: Registry = {}
        self._total_kb = 0
        self._init_layout(total_kb)

    def _init_layout(self, total_kb: int) -> None:
        if total_kb <= 0:
            raise InvalidArgumentError(f"total memory must be positive, got {total_kb}")

        system_kb = total_kb // SYSTEM_SHARE
        blocks = []
        # Memories under 10 KB have no room for a system block.
        if system_kb > 0:
            blocks.append(MemoryBlock.system(0, system_kb))
        blocks.append(MemoryBlock(block_id=len(blocks), size=total_kb - system_kb))

        self._blocks = blocks
        self._registry = {}
        self._total_kb = total_kb

    def _renumber(self) -> None:
        for index, block in enumerate(self._blocks):
            block.block_id = index

    # -- configuration -------------------------------------------------

    @property
    def algorithm(self) -> Placement:
        return self._placement

    def configure(self, algorithm: PlacementSpec) -> None:
        """
        Switch the placement algorithm. Existing allocations are kept as-is.
        """
        with self._lock:
            self._placement = _coerce_placement(algorithm)
            logger.debug("Allocation algorithm set to %r", self._placement)

    def reset(self, total_kb: Optional[int] = None) -> None:
        with self._lock:
            self._init_layout(self._total_kb if total_kb is None else total_kb)
            logger.debug("Memory reset to %d KB", self._total_kb)

    # -- allocation ----------------------------------------------------

    def allocate(self, pid: int, label: str, size_kb: int) -> bool:
        """
        Place ``size_kb`` for ``pid``. Returns False, with no change to the
        layout, when the current algorithm finds no room.
        """
        if size_kb <= 0:
            raise InvalidArgumentError(f"allocation size must be positive, got {size_kb}")

        with self._lock:
            if self._placement.paged:
                ok = self._allocate_pages(self._placement, pid, label, size_kb)
            else:
                ok = self._allocate_partition(pid, label, size_kb)

            if ok:
                self._renumber()
                logger.debug("Allocated %d KB to pid=%d (%s) using %s", size_kb, pid, label, self._placement.name)
            else:
                logger.debug("No room for %d KB for pid=%d using %s", size_kb, pid, self._placement.name)
            return ok

    def _allocate_partition(self, pid: int, label: str, size_kb: int) -> bool:
        index = self._placement.select(self._blocks, size_kb)
        if index is None:
            return False

        selected = self._blocks[index]
        allocated = MemoryBlock(block_id=selected.block_id, size=size_kb)
        allocated.assign(pid, label)
        self._blocks[index] = allocated

        leftover = selected.size - size_kb
        if leftover > 0:
            self._blocks.insert(index + 1, MemoryBlock(block_id=selected.block_id + 1, size=leftover))

        self._registry.setdefault(pid, []).append(allocated)
        return True

    def _allocate_pages(self, paging: Paging, pid: int, label: str, size_kb: int) -> bool:
        plan = paging.plan(self._blocks, size_kb)
        if plan is None:
            return False

        pages: List[MemoryBlock] = []
        emptied: List[int] = []
        for index, count in plan:
            for _ in range(count):
                number = len(pages) + 1
                page = MemoryBlock(block_id=0, size=paging.page_size, page=number)
                page.assign(pid, f"{label}_P{number}")
                pages.append(page)

            source = self._blocks[index]
            used = count * paging.page_size
            if source.size > used:
                source.size -= used
            else:
                emptied.append(index)

        for index in reversed(emptied):
            del self._blocks[index]

        self._blocks.extend(pages)
        self._registry.setdefault(pid, []).extend(pages)
        return True

    # -- release -------------------------------------------------------

    def free(self, pid: int) -> None:
        """
        Release everything ``pid`` owns. Unknown pids are ignored.

        Partition modes free each block in place and coalesce neighbours;
        paging removes the blocks and folds their size into free space.
        """
        with self._lock:
            owned = self._registry.pop(pid, None)
            if not owned:
                return

            if self._placement.paged:
                self._release_pages(owned)
            else:
                for block in owned:
                    block.release()
                self._coalesce()

            self._renumber()
            logger.debug("Freed %d block(s) of pid=%d", len(owned), pid)

    def _coalesce(self) -> None:
        index = 0
        while index < len(self._blocks) - 1:
            current = self._blocks[index]
            following = self._blocks[index + 1]
            if current.is_free and following.is_free:
                current.size += following.size
                del self._blocks[index + 1]
            else:
                index += 1

    def _release_pages(self, pages: List[MemoryBlock]) -> None:
        """
        Drop ``pages`` from the list and fold their size into the first FREE
        block, or a new FREE block at the tail when there is none.
        """
        page_ids = {id(page) for page in pages}
        self._blocks = [block for block in self._blocks if id(block) not in page_ids]
        released = sum(page.size for page in pages)

        for block in self._blocks:
            if block.is_free:
                block.size += released
                return
        self._blocks.append(MemoryBlock(block_id=len(self._blocks), size=released))

    # -- introspection -------------------------------------------------

    def total_kb(self) -> int:
        return self._total_kb

    def free_kb(self) -> int:
        with self._lock:
            return sum(block.size for block in self._blocks if block.is_free)

    def used_kb(self) -> int:
        return self._total_kb - self.free_kb()

    def fragmentation_ratio(self) -> float:
        """
        Share of blocks that are FREE, as a percentage. Zero unless memory is
        split into more than one free block.
        """
        with self._lock:
            free_blocks = sum(1 for block in self._blocks if block.is_free)
            if free_blocks <= 1:
                return 0.0
            return free_blocks / len(self._blocks) * 100.0

    def blocks(self) -> List[MemoryBlock]:
        with self._lock:
            return copy.deepcopy(self._blocks)

    def blocks_of(self, pid: int) -> List[MemoryBlock]:
        with self._lock:
            return copy.deepcopy(self._registry.get(pid, []))

    def allocations(self) -> Registry:
        with self._lock:
            return copy.deepcopy(self._registry)

    def stats(self) -> MemoryStats:
        with self._lock:
            free_kb = self.free_kb()
            return MemoryStats(
                total_kb=self._total_kb,
                used_kb=self._total_kb - free_kb,
                free_kb=free_kb,
                fragmentation_ratio=self.fragmentation_ratio(),
                algorithm=self._placement.name,
            )
