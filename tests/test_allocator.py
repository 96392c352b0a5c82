import pytest

from ossim.allocator import Allocator
from ossim.errors import InvalidArgumentError
from ossim.models import BlockKind


def _layout(allocator):
    return [(b.kind, b.size) for b in allocator.blocks()]


def _with_holes(algorithm):
    """
    100 KB memory whose free blocks are 40, 10 and 25 KB, separated by
    5 KB allocations.
    """
    allocator = Allocator(100, algorithm)
    for pid, size in [(1, 40), (2, 5), (3, 10), (4, 5), (5, 25), (6, 5)]:
        assert allocator.allocate(pid, f"P{pid}", size)
    for pid in (1, 3, 5):
        allocator.free(pid)
    return allocator


def _assert_no_adjacent_free(allocator):
    blocks = allocator.blocks()
    for left, right in zip(blocks, blocks[1:]):
        assert not (left.is_free and right.is_free)


def test_initial_layout():
    allocator = Allocator(100)
    assert _layout(allocator) == [(BlockKind.SYSTEM, 10), (BlockKind.FREE, 90)]
    assert allocator.blocks()[0].owner_label == "SYSTEM"
    assert allocator.free_kb() == 90
    assert allocator.used_kb() == 10
    assert allocator.fragmentation_ratio() == 0.0


def test_first_fit_rejects_request_larger_than_leftover():
    allocator = Allocator(100, "first_fit")
    assert allocator.allocate(1, "A", 30)
    assert allocator.allocate(2, "B", 80) is False
    assert allocator.free_kb() == 60
    assert _layout(allocator) == [
        (BlockKind.SYSTEM, 10),
        (BlockKind.ALLOCATED, 30),
        (BlockKind.FREE, 60),
    ]


def test_first_fit_takes_first_hole():
    allocator = _with_holes("first_fit")
    assert allocator.allocate(7, "G", 10)
    blocks = allocator.blocks()
    assert blocks[1].owner_pid == 7
    assert blocks[2].kind is BlockKind.FREE and blocks[2].size == 30


def test_best_fit_picks_exact_hole():
    allocator = _with_holes("best_fit")
    before = len(allocator.blocks())
    assert allocator.allocate(7, "G", 10)

    blocks = allocator.blocks()
    assert len(blocks) == before
    assert blocks[3].owner_pid == 7
    assert blocks[3].size == 10
    assert blocks[1].size == 40 and blocks[1].is_free


def test_worst_fit_picks_largest_hole():
    allocator = _with_holes("worst_fit")
    assert allocator.allocate(7, "G", 10)

    blocks = allocator.blocks()
    assert blocks[1].owner_pid == 7
    assert blocks[2].kind is BlockKind.FREE
    assert blocks[2].size == 30


def test_best_fit_first_found_wins_ties():
    allocator = Allocator(100, "best_fit")
    for pid, size in [(1, 20), (2, 5), (3, 20), (4, 45)]:
        assert allocator.allocate(pid, f"P{pid}", size)
    allocator.free(1)
    allocator.free(3)

    assert allocator.allocate(5, "E", 15)
    assert allocator.blocks()[1].owner_pid == 5


def test_free_coalesces_neighbours():
    allocator = Allocator(100)
    for pid in (1, 2, 3):
        allocator.allocate(pid, f"P{pid}", 20)
    allocator.free(1)
    allocator.free(3)
    _assert_no_adjacent_free(allocator)
    allocator.free(2)

    assert _layout(allocator) == [(BlockKind.SYSTEM, 10), (BlockKind.FREE, 90)]


def test_free_is_idempotent_and_ignores_unknown_pid():
    allocator = Allocator(100)
    allocator.allocate(1, "A", 30)
    allocator.free(1)
    once = _layout(allocator)
    allocator.free(1)
    allocator.free(42)

    assert _layout(allocator) == once
    assert allocator.allocations() == {}


@pytest.mark.parametrize("algorithm", ["first_fit", "best_fit", "worst_fit", "paging"])
def test_block_sizes_always_sum_to_total(algorithm):
    allocator = Allocator(512, algorithm)
    steps = [
        ("alloc", 1, 60),
        ("alloc", 2, 100),
        ("alloc", 3, 33),
        ("free", 2, 0),
        ("alloc", 4, 70),
        ("alloc", 5, 500),
        ("free", 1, 0),
        ("alloc", 6, 20),
        ("free", 3, 0),
        ("free", 4, 0),
    ]
    for op, pid, size in steps:
        if op == "alloc":
            allocator.allocate(pid, f"P{pid}", size)
        else:
            allocator.free(pid)
            if algorithm != "paging":
                _assert_no_adjacent_free(allocator)
        assert sum(b.size for b in allocator.blocks()) == 512
        assert allocator.free_kb() + allocator.used_kb() == 512


def test_paging_failure_leaves_memory_untouched():
    allocator = Allocator(100, "paging")
    before = _layout(allocator)

    assert allocator.allocate(1, "A", 100) is False
    assert allocator.free_kb() == 90
    assert _layout(allocator) == before
    assert allocator.allocations() == {}


def test_paging_spans_scattered_free_blocks():
    allocator = Allocator(200)
    for pid, size in [(1, 40), (2, 20), (3, 40), (4, 20)]:
        allocator.allocate(pid, f"P{pid}", size)
    allocator.free(1)
    allocator.free(3)
    allocator.configure("paging")
    before = _layout(allocator)

    # three whole pages are available, four are needed
    assert allocator.allocate(5, "E", 100) is False
    assert _layout(allocator) == before
    assert allocator.free_kb() == 140

    assert allocator.allocate(5, "E", 96)
    blocks = allocator.blocks()
    assert [b.owner_label for b in blocks[-3:]] == ["E_P1", "E_P2", "E_P3"]
    assert all(b.size == 32 and b.owner_pid == 5 for b in blocks[-3:])
    assert [b.size for b in blocks if b.is_free] == [8, 8, 28]
    assert allocator.free_kb() == 44
    assert len(allocator.blocks_of(5)) == 3

    allocator.free(5)
    assert [b.size for b in allocator.blocks() if b.is_free] == [104, 8, 28]
    assert allocator.free_kb() == 140
    assert sum(b.size for b in allocator.blocks()) == 200


def test_paging_free_without_free_block_appends_one():
    allocator = Allocator(320, "paging")
    assert allocator.allocate(1, "A", 288)
    assert allocator.free_kb() == 0
    assert len(allocator.blocks()) == 10

    allocator.free(1)
    assert _layout(allocator) == [(BlockKind.SYSTEM, 32), (BlockKind.FREE, 288)]


def test_configure_keeps_existing_allocations():
    allocator = Allocator(100)
    allocator.allocate(1, "A", 30)
    allocator.configure("paging")
    assert allocator.allocate(1, "A", 32)
    assert len(allocator.blocks_of(1)) == 2

    allocator.free(1)
    assert _layout(allocator) == [(BlockKind.SYSTEM, 10), (BlockKind.FREE, 90)]


def test_partition_free_coalesces_pages_from_mixed_registration():
    allocator = Allocator(200, "paging")
    assert allocator.allocate(1, "A", 32)
    assert allocator.allocate(2, "B", 32)
    allocator.configure("first_fit")
    assert allocator.allocate(4, "D", 116)
    allocator.configure("paging")
    allocator.free(2)
    allocator.configure("first_fit")
    allocator.free(4)
    _assert_no_adjacent_free(allocator)

    allocator.free(1)

    _assert_no_adjacent_free(allocator)
    assert _layout(allocator) == [(BlockKind.SYSTEM, 20), (BlockKind.FREE, 180)]


def test_paging_free_removes_partition_blocks_too():
    allocator = Allocator(100)
    allocator.allocate(1, "A", 30)
    allocator.allocate(2, "B", 20)
    allocator.configure("paging")

    allocator.free(1)

    assert _layout(allocator) == [
        (BlockKind.SYSTEM, 10),
        (BlockKind.ALLOCATED, 20),
        (BlockKind.FREE, 70),
    ]


def test_fragmentation_ratio_counts_free_blocks():
    allocator = _with_holes("first_fit")
    assert allocator.fragmentation_ratio() == pytest.approx(3 / 7 * 100)

    stats = allocator.stats()
    assert stats.total_kb == 100
    assert stats.free_kb == 75
    assert stats.used_kb == 25
    assert stats.algorithm == "First Fit"
    assert "Fragmentation: 42.9%" in stats.summary()


def test_block_ids_follow_position():
    allocator = _with_holes("first_fit")
    assert [b.block_id for b in allocator.blocks()] == list(range(7))


def test_reset_restores_startup_layout():
    allocator = _with_holes("first_fit")
    allocator.reset()
    assert _layout(allocator) == [(BlockKind.SYSTEM, 10), (BlockKind.FREE, 90)]
    assert allocator.allocations() == {}

    allocator.reset(500)
    assert allocator.total_kb() == 500
    assert _layout(allocator) == [(BlockKind.SYSTEM, 50), (BlockKind.FREE, 450)]


def test_invalid_arguments():
    with pytest.raises(InvalidArgumentError):
        Allocator(0)
    allocator = Allocator(100)
    with pytest.raises(InvalidArgumentError):
        allocator.allocate(1, "A", 0)
    with pytest.raises(InvalidArgumentError):
        allocator.configure("next_fit")
    with pytest.raises(InvalidArgumentError):
        allocator.reset(-5)
    assert allocator.total_kb() == 100


def test_snapshots_are_copies():
    allocator = Allocator(100)
    allocator.allocate(1, "A", 30)

    blocks = allocator.blocks()
    blocks[1].release()
    blocks.reverse()
    registry = allocator.allocations()
    registry[1].clear()

    assert allocator.blocks()[1].owner_pid == 1
    assert len(allocator.blocks_of(1)) == 1


def test_block_helpers():
    allocator = Allocator(100)
    allocator.allocate(3, "C", 30)
    block = allocator.blocks()[1]
    assert block.belongs_to(3)
    assert not block.can_fit(10)
    assert block.describe() == "Block 1: 30KB - ALLOCATED (C)"
    assert allocator.blocks()[2].can_fit(60)
