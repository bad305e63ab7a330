"""Tests for RingBuffer.

The ring buffer is the bounded, lossy staging area in front of remote
delivery: it must never exceed capacity and must drain atomically.
"""

from __future__ import annotations

import threading

import pytest

from linklog.telemetry.ring_buffer import RingBuffer


class TestAdd:
    """Tests for add() and capacity."""

    def test_keeps_newest_when_over_capacity(self, make_entry) -> None:
        # Arrange
        buffer = RingBuffer(max_size=2)
        x, y, z = make_entry("X"), make_entry("Y"), make_entry("Z")

        # Act
        for entry in (x, y, z):
            buffer.add(entry)

        # Assert
        assert buffer.peek() == [y, z]

    def test_size_never_exceeds_capacity(self, make_entry) -> None:
        buffer = RingBuffer(max_size=5)
        for i in range(50):
            buffer.add(make_entry(f"m{i}"))
            assert len(buffer) <= 5
        assert buffer.size() == 5

    def test_is_full_at_capacity(self, make_entry) -> None:
        buffer = RingBuffer(max_size=2)
        buffer.add(make_entry())
        assert not buffer.is_full()
        buffer.add(make_entry())
        assert buffer.is_full()

    @pytest.mark.parametrize("size", [0, -3])
    def test_capacity_clamped_to_one(self, size: int, make_entry) -> None:
        buffer = RingBuffer(max_size=size)
        buffer.add(make_entry("a"))
        buffer.add(make_entry("b"))
        assert buffer.max_size == 1
        assert [e.message for e in buffer.peek()] == ["b"]


class TestFlush:
    """Tests for flush() draining."""

    def test_returns_snapshot_and_empties(self, make_entry) -> None:
        buffer = RingBuffer(max_size=3)
        entries = [make_entry(f"m{i}") for i in range(3)]
        for entry in entries:
            buffer.add(entry)

        drained = buffer.flush()

        assert drained == entries
        assert buffer.is_empty()

    def test_add_after_flush_starts_fresh(self, make_entry) -> None:
        buffer = RingBuffer(max_size=3)
        buffer.add(make_entry("old"))
        drained = buffer.flush()

        buffer.add(make_entry("new"))

        assert [e.message for e in drained] == ["old"]
        assert [e.message for e in buffer.peek()] == ["new"]

    def test_flush_empty_returns_empty_list(self) -> None:
        assert RingBuffer().flush() == []

    def test_concurrent_adds_and_flushes_lose_nothing_below_capacity(self, make_entry) -> None:
        # Arrange
        buffer = RingBuffer(max_size=10_000)
        entries = [make_entry(f"m{i}") for i in range(2000)]
        drained: list = []

        def producer(chunk: list) -> None:
            for entry in chunk:
                buffer.add(entry)

        threads = [threading.Thread(target=producer, args=(entries[i::4],)) for i in range(4)]

        # Act
        for thread in threads:
            thread.start()
        while any(thread.is_alive() for thread in threads):
            drained.extend(buffer.flush())
        for thread in threads:
            thread.join()
        drained.extend(buffer.flush())

        # Assert
        assert sorted(e.id for e in drained) == sorted(e.id for e in entries)


class TestRequeue:
    """Tests for requeue() after a failed delivery."""

    def test_batch_goes_back_in_front(self, make_entry) -> None:
        buffer = RingBuffer(max_size=10)
        a, b, c = make_entry("a"), make_entry("b"), make_entry("c")
        buffer.add(a)
        buffer.add(b)
        batch = buffer.flush()
        buffer.add(c)

        buffer.requeue(batch)

        assert buffer.peek() == [a, b, c]

    def test_requeue_over_capacity_drops_oldest(self, make_entry) -> None:
        buffer = RingBuffer(max_size=2)
        a, b, c = make_entry("a"), make_entry("b"), make_entry("c")
        buffer.add(a)
        buffer.add(b)
        batch = buffer.flush()
        buffer.add(c)

        buffer.requeue(batch)

        assert buffer.peek() == [b, c]


class TestResize:
    """Tests for set_max_size()."""

    def test_shrinking_trims_from_front(self, make_entry) -> None:
        buffer = RingBuffer(max_size=5)
        entries = [make_entry(f"m{i}") for i in range(5)]
        for entry in entries:
            buffer.add(entry)

        buffer.set_max_size(2)

        assert buffer.peek() == entries[3:]
        assert buffer.max_size == 2

    def test_growing_keeps_contents(self, make_entry) -> None:
        buffer = RingBuffer(max_size=2)
        entries = [make_entry("a"), make_entry("b")]
        for entry in entries:
            buffer.add(entry)

        buffer.set_max_size(4)
        buffer.add(make_entry("c"))

        assert len(buffer) == 3


class TestAccessors:
    """Tests for the inspection helpers."""

    def test_oldest_newest_and_remove_oldest(self, make_entry) -> None:
        buffer = RingBuffer(max_size=3)
        a, b = make_entry("a"), make_entry("b")
        buffer.add(a)
        buffer.add(b)

        assert buffer.oldest() == a
        assert buffer.newest() == b
        assert buffer.remove_oldest() == a
        assert buffer.peek() == [b]

    def test_empty_accessors_return_none(self) -> None:
        buffer = RingBuffer()
        assert buffer.oldest() is None
        assert buffer.newest() is None
        assert buffer.remove_oldest() is None

    def test_clear(self, make_entry) -> None:
        buffer = RingBuffer()
        buffer.add(make_entry())
        buffer.clear()
        assert buffer.is_empty()
