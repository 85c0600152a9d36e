import pytest

from memoria.config import FitAlgorithm
from memoria.fixed import FixedPartitions, round_up_to_multiple
from memoria.models import NoSpaceError, ProcessNotFound, ProcessTable

SIZES = (256, 64, 128, 64)


def make(algorithm):
    return FixedPartitions(SIZES, algorithm, ProcessTable())


def test_round_up_zero_counts_as_one():
    assert round_up_to_multiple(8, 0) == 8


@pytest.mark.parametrize("value", [1, 7, 8, 9, 15, 16, 17, 100])
def test_round_up_invariants(value):
    result = round_up_to_multiple(8, value)
    assert result % 8 == 0
    assert result >= value
    assert result - value < 8


def test_round_up_rejects_bad_base():
    with pytest.raises(ValueError):
        round_up_to_multiple(0, 5)


def test_base_of_first_block_is_zero():
    assert make(FitAlgorithm.FIRST).base_of(0) == 0


def test_base_of_accumulates_sizes():
    fixed = make(FitAlgorithm.FIRST)
    for block in range(len(SIZES) - 1):
        assert fixed.base_of(block + 1) - fixed.base_of(block) == SIZES[block]


def test_base_of_out_of_range():
    with pytest.raises(IndexError):
        make(FitAlgorithm.FIRST).base_of(len(SIZES))


def test_first_fit_takes_first_block_that_fits():
    fixed = make(FitAlgorithm.FIRST)
    assert fixed.choose_block(60) == 0
    fixed.allocate(1, 60)
    assert fixed.choose_block(60) == 1


def test_best_fit_takes_smallest_fitting_block():
    fixed = make(FitAlgorithm.BEST)
    block = fixed.choose_block(100)
    assert SIZES[block] == min(s for s in SIZES if s >= 100)
    assert fixed.choose_block(60) == 1


def test_worst_fit_takes_largest_block():
    fixed = make(FitAlgorithm.WORST)
    assert fixed.choose_block(10) == 0
    fixed.allocate(1, 10)
    block = fixed.choose_block(10)
    assert SIZES[block] == max(SIZES[1:])


def test_allocate_registers_process_spanning_block():
    table = ProcessTable()
    fixed = FixedPartitions(SIZES, FitAlgorithm.BEST, table)
    process = fixed.allocate(7, 100)
    block = fixed.block_of(7)
    assert fixed.is_used(block)
    assert process.base == fixed.base_of(block)
    assert process.size() == SIZES[block]
    assert table.get(7) is process


def test_allocate_zero_size_rejected():
    with pytest.raises(ValueError):
        make(FitAlgorithm.FIRST).allocate(1, 0)


def test_allocate_too_large_raises_no_space():
    with pytest.raises(NoSpaceError):
        make(FitAlgorithm.FIRST).allocate(1, 1000)


def test_no_space_once_all_blocks_used():
    fixed = make(FitAlgorithm.FIRST)
    for pid in range(len(SIZES)):
        fixed.allocate(pid, 64)
    with pytest.raises(NoSpaceError):
        fixed.allocate(99, 1)


def test_duplicate_pid_rejected():
    fixed = make(FitAlgorithm.FIRST)
    fixed.allocate(1, 10)
    with pytest.raises(ValueError):
        fixed.allocate(1, 10)


def test_release_frees_block_and_drops_process():
    table = ProcessTable()
    fixed = FixedPartitions(SIZES, FitAlgorithm.FIRST, table)
    fixed.allocate(3, 50)
    block = fixed.block_of(3)
    released = fixed.release(3)
    assert released.pid == 3
    assert not fixed.is_used(block)
    assert not table.contains(3)
    with pytest.raises(ProcessNotFound):
        fixed.block_of(3)


def test_released_block_is_reused():
    fixed = make(FitAlgorithm.FIRST)
    fixed.allocate(1, 200)
    block = fixed.block_of(1)
    fixed.release(1)
    fixed.allocate(2, 200)
    assert fixed.block_of(2) == block


def test_release_unknown_pid():
    with pytest.raises(ProcessNotFound):
        make(FitAlgorithm.FIRST).release(42)


def test_is_used_out_of_range():
    with pytest.raises(IndexError):
        make(FitAlgorithm.FIRST).is_used(-1)