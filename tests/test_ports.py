import pytest

from toykernel.ports import WAIT_PORT, PortBus


def test_wait_writes_zero_to_wait_port():
    bus = PortBus()
    bus.wait()
    assert bus.writes == [(0x80, 0)]
    assert WAIT_PORT == 0x80


def test_writes_are_recorded_in_order():
    bus = PortBus()
    bus.write_byte(0x3D4, 0x0E)
    bus.write_byte(0x3D5, 0x01)
    assert bus.writes == [(0x3D4, 0x0E), (0x3D5, 0x01)]


def test_fed_values_are_read_in_order():
    bus = PortBus()
    bus.feed(0x60, [0x1E, 0x9E, 0x02])
    assert [bus.read_byte(0x60) for _ in range(3)] == [0x1E, 0x9E, 0x02]


def test_feed_is_per_port():
    bus = PortBus()
    bus.feed(0x60, [5])
    bus.feed(0x21, [9])
    assert bus.read_byte(0x21) == 9
    assert bus.read_byte(0x60) == 5


def test_read_after_write_returns_last_written():
    bus = PortBus()
    bus.write_byte(0x21, 0xAB)
    bus.write_byte(0x21, 0xCD)
    assert bus.read_byte(0x21) == 0xCD


def test_fed_values_take_priority_over_written():
    bus = PortBus()
    bus.write_byte(0x60, 7)
    bus.feed(0x60, [3])
    assert bus.read_byte(0x60) == 3
    assert bus.read_byte(0x60) == 7


def test_unused_port_reads_zero():
    assert PortBus().read_byte(0x1234) == 0


def test_reading_does_not_record_writes():
    bus = PortBus()
    bus.feed(0x60, [1])
    bus.read_byte(0x60)
    assert bus.writes == []


@pytest.mark.parametrize("port", [-1, 0x10000])
def test_port_out_of_range(port):
    bus = PortBus()
    with pytest.raises(ValueError):
        bus.write_byte(port, 0)
    with pytest.raises(ValueError):
        bus.read_byte(port)


@pytest.mark.parametrize("value", [-1, 256])
def test_value_out_of_range(value):
    bus = PortBus()
    with pytest.raises(ValueError):
        bus.write_byte(0x60, value)
    with pytest.raises(ValueError):
        bus.feed(0x60, [value])


def test_rejected_feed_queues_nothing():
    bus = PortBus()
    with pytest.raises(ValueError):
        bus.feed(0x60, [1, 300])
    assert bus.read_byte(0x60) == 0