import pytest

from aggregation.chunking import DEFAULT_CHUNK_SIZE, partition_records, should_chunk
from aggregation.exceptions import ConfigurationError


def test_default_chunk_size():
    assert DEFAULT_CHUNK_SIZE == 5000


def test_small_input_is_one_chunk():
    records = list(range(10))

    assert partition_records(records, 10) == [records]
    assert partition_records(records, 50) == [records]


def test_empty_input_is_one_empty_chunk():
    assert partition_records([], 5) == [[]]


def test_chunk_sizes_and_order():
    records = list(range(23))
    chunks = partition_records(records, 5)

    assert [len(c) for c in chunks] == [5, 5, 5, 5, 3]
    assert [r for chunk in chunks for r in chunk] == records


def test_chunk_count_is_ceiling():
    for n, size, expected in [(11, 10, 2), (20, 10, 2), (21, 10, 3), (12000, 5000, 3)]:
        assert len(partition_records(list(range(n)), size)) == expected


def test_should_chunk_only_above_chunk_size():
    assert should_chunk(5000) is False
    assert should_chunk(5001) is True
    assert should_chunk(0, 1) is False


@pytest.mark.parametrize("bad", [0, -1, 2.5, "10", True])
def test_invalid_chunk_size_rejected(bad):
    with pytest.raises(ConfigurationError):
        partition_records([1, 2, 3], bad)
