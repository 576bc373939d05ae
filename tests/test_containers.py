import pytest

from corex.containers import Heap, Queue, Set


def test_heap_source_case():
    data = [3, 1, 2]
    h = Heap(data, lambda x, y: x < y)

    old = len(h)
    assert len(h) == len(data)
    assert h.peek() == 1
    assert h.pop() == 1

    h.push(4)
    assert len(h) == old

    assert h.remove(1) == 3
    assert len(h) == 2


def test_heap_pops_in_order():
    h = Heap([5, 9, 1, 7, 3, 8], lambda x, y: x < y)
    out = []
    while h:
        out.append(h.pop())
    assert out == [1, 3, 5, 7, 8, 9]


def test_heap_custom_order_max_heap():
    h = Heap([], lambda x, y: x > y)
    for value in [4, 10, 2, 7]:
        h.push(value)
    assert h.peek() == 10
    assert [h.pop() for _ in range(4)] == [10, 7, 4, 2]


def test_heap_empty_errors():
    h = Heap([], lambda x, y: x < y)
    assert not h
    with pytest.raises(IndexError):
        h.pop()
    with pytest.raises(IndexError):
        h.peek()
    with pytest.raises(IndexError):
        h.remove(0)


def test_heap_fix_after_change():
    items = [[5], [2], [8]]
    h = Heap(items, lambda x, y: x[0] < y[0])
    top = h.peek()
    top[0] = 100
    h.fix(0)
    assert h.pop()[0] == 5
    assert h.pop()[0] == 8
    assert h.pop()[0] == 100


def test_heap_fix_on_empty_is_noop():
    h = Heap([], lambda x, y: x < y)
    h.fix(0)
    assert len(h) == 0


def test_queue_fifo():
    q = Queue(1, 2)
    q.push(3)
    assert len(q) == 3
    assert q.front() == 1
    assert q.back() == 3
    assert [q.pop(), q.pop(), q.pop()] == [1, 2, 3]
    assert not q


def test_queue_empty_errors():
    q = Queue()
    with pytest.raises(IndexError):
        q.pop()
    with pytest.raises(IndexError):
        q.front()
    with pytest.raises(IndexError):
        q.back()


def test_set_source_case():
    s = Set("key1", "key2", "key3")
    assert s.has("key1")
    assert not s.has_all("some")

    s.insert("key4", "key5")
    assert len(s) == 5

    s.delete("key1", "key2", "key3")
    assert len(s) == 2

    assert len(s.to_list()) == len(s)


def test_set_has_any_and_membership():
    s = Set("a", "b")
    assert s.has_any("x", "b")
    assert not s.has_any("x", "y")
    assert s.has_all("a", "b")
    assert "a" in s
    assert "z" not in s
    assert sorted(s) == ["a", "b"]


def test_set_delete_missing_is_ignored():
    s = Set(1)
    s.delete(2)
    assert s.to_list() == [1]