"""
Tests for the reading ring buffer.

Tests cover:
- Capacity and drop-oldest eviction
- Timestamps kept in step with values
- Overriding buffered and upcoming readings
"""
import threading

import pytest

from sensorweb.buffer import ReadingBuffer


class TestCapacity:
    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            ReadingBuffer(0)

    def test_never_exceeds_capacity(self):
        buf = ReadingBuffer(3)
        for i in range(10):
            buf.append(i)
            assert len(buf) <= 3
        # oldest dropped first
        assert buf.values() == [7.0, 8.0, 9.0]

    def test_timestamps_follow_values(self):
        buf = ReadingBuffer(2)
        buf.append(1.0, ts_ms=100)
        buf.append(2.0, ts_ms=200)
        buf.append(3.0, ts_ms=300)
        assert buf.values() == [2.0, 3.0]
        assert buf.timestamps() == [200, 300]

    def test_default_timestamp_is_now(self):
        buf = ReadingBuffer(1)
        buf.append(1.0)
        assert buf.timestamps()[0] > 1_600_000_000_000

    def test_last_value(self):
        buf = ReadingBuffer(5)
        assert buf.last_value == 0.0
        buf.append(4.2)
        assert buf.last_value == 4.2

    def test_clear(self):
        buf = ReadingBuffer(5)
        buf.append(1.0)
        buf.force_next(5.0, 3)
        buf.clear()
        assert len(buf) == 0
        assert buf.last_value == 0.0
        assert buf.forced_remaining == 0


class TestOverride:
    def test_force_all(self):
        buf = ReadingBuffer(5)
        for v in (1.0, 2.0, 3.0):
            buf.append(v)
        assert buf.force_all(7.0) == 3
        assert buf.values() == [7.0, 7.0, 7.0]
        assert buf.last_value == 7.0
        # later readings are not affected
        buf.append(4.0)
        assert buf.values()[-1] == 4.0

    def test_force_all_on_empty_buffer(self):
        buf = ReadingBuffer(5)
        assert buf.force_all(7.0) == 0
        assert buf.last_value == 0.0

    def test_force_next(self):
        buf = ReadingBuffer(10)
        buf.force_next(20.0, 2)
        assert buf.append(1.0) == 20.0
        assert buf.append(2.0) == 20.0
        assert buf.append(3.0) == 3.0
        assert buf.values() == [20.0, 20.0, 3.0]
        assert buf.forced_remaining == 0

    def test_force_next_cancel(self):
        buf = ReadingBuffer(10)
        buf.force_next(20.0, 5)
        buf.force_next(20.0, 0)
        assert buf.append(1.0) == 1.0


def test_concurrent_appends_keep_lengths_equal():
    buf = ReadingBuffer(100)

    def writer():
        for i in range(1000):
            buf.append(i)

    threads = [threading.Thread(target=writer) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(buf.values()) == len(buf.timestamps()) == 100


def test_snapshot_reads_everything_at_once():
    buf = ReadingBuffer(3)
    for i in range(4):
        buf.append(float(i), ts_ms=i)
    assert buf.snapshot() == (3.0, [1.0, 2.0, 3.0], [1, 2, 3])


def test_snapshot_stays_paired_while_sampling():
    from sensorweb.sensors.fake import FakeSensor
    from sensorweb.service import SensorService

    buf = ReadingBuffer(3)
    service = SensorService(buf, FakeSensor())
    stop = threading.Event()

    def writer():
        i = 0
        while not stop.is_set():
            # value and timestamp carry the same number
            buf.append(float(i), ts_ms=i)
            i += 1

    t = threading.Thread(target=writer)
    t.start()
    try:
        for _ in range(2000):
            snap = service.snapshot()
            assert len(snap.values) == len(snap.time)
            assert [int(v) for v in snap.values] == snap.time
            if snap.values:
                assert snap.lastvalue == snap.values[-1]
    finally:
        stop.set()
        t.join()
