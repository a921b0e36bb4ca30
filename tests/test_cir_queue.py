import pytest

from dddkit.cir_queue import CirQueue


def test_push():
    q = CirQueue(5)
    for i in range(1, 101):
        q.push(i)
    assert len(q) == 5
    assert q.to_list() == [96, 97, 98, 99, 100]
    assert q.is_full()


def test_partial_fill():
    q = CirQueue(5)
    q.push("a")
    q.push("b")
    assert len(q) == 2
    assert q.to_list() == ["a", "b"]
    assert not q.is_full()


def test_exactly_full():
    q = CirQueue(3)
    for i in range(3):
        q.push(i)
    assert q.is_full()
    assert q.to_list() == [0, 1, 2]
    q.push(3)
    assert q.to_list() == [1, 2, 3]


def test_empty():
    q = CirQueue(4)
    assert len(q) == 0
    assert q.to_list() == []


@pytest.mark.parametrize("size", [0, 256, -1])
def test_invalid_size(size):
    with pytest.raises(ValueError):
        CirQueue(size)