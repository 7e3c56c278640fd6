import struct

import pytest

from toykernel.console import Console
from toykernel.interrupts import (
    DESCRIPTOR_SIZE,
    GATE_TYPE_INTERRUPT,
    IDT_SIZE,
    OFFSET_PIC_MASTER,
    OFFSET_PIC_SLAVE,
    SEGMENT_SELECTOR,
    IdtDescriptor,
    InterruptHandler,
    IsrArgs,
    KernelHalt,
    Pic,
    build_idt,
    idt_header_size,
    is_pic_interrupt,
)
from toykernel.keyboard import PS2Keyboard
from toykernel.ports import PortBus, WAIT_PORT
from toykernel.vga import VgaTextDriver


def make_handler():
    bus = PortBus()
    driver = VgaTextDriver(bus)
    console = Console(driver)
    console.init(0, False)
    handler = InterruptHandler(console, Pic(bus), PS2Keyboard(bus))
    return handler, bus, driver


def test_descriptor_keeps_address():
    address = 0x123456789ABCDEF0
    descriptor = IdtDescriptor.from_address(address)
    assert descriptor.address == address
    assert descriptor.segment_selector == SEGMENT_SELECTOR
    assert descriptor.gate_type_plus_zero_plus_dpl_plus_p >> 7 == 1
    assert descriptor.gate_type_plus_zero_plus_dpl_plus_p & 0xF == GATE_TYPE_INTERRUPT


def test_descriptor_pack_layout():
    descriptor = IdtDescriptor.from_address(0xFFFF800012345678)
    packed = descriptor.pack()
    assert len(packed) == DESCRIPTOR_SIZE
    assert struct.unpack_from("<H", packed, 0)[0] == descriptor.offset_low
    assert struct.unpack_from("<H", packed, 2)[0] == SEGMENT_SELECTOR
    assert struct.unpack_from("<H", packed, 6)[0] == descriptor.offset_middle
    assert struct.unpack_from("<I", packed, 8)[0] == descriptor.offset_high
    assert struct.unpack_from("<I", packed, 12)[0] == 0


def test_descriptor_rejects_oversized_address():
    with pytest.raises(ValueError):
        IdtDescriptor.from_address(1 << 64)


def test_build_idt_one_gate_per_handler():
    addresses = [0x1000 + 16 * i for i in range(IDT_SIZE)]
    idt = build_idt(addresses)
    assert [gate.address for gate in idt] == addresses


def test_build_idt_rejects_too_many():
    with pytest.raises(ValueError):
        build_idt(range(IDT_SIZE + 1))


def test_idt_header_size():
    assert idt_header_size(IDT_SIZE) == 4095
    with pytest.raises(ValueError):
        idt_header_size(0)


@pytest.mark.parametrize(
    "vector, expected",
    [(0x20, True), (0x27, True), (0x28, True), (0x2F, True), (0x30, False), (0x1F, False), (3, False)],
)
def test_is_pic_interrupt(vector, expected):
    assert is_pic_interrupt(vector) is expected


def test_remap_sequence():
    bus = PortBus()
    Pic(bus).remap()
    commands = [w for w in bus.writes if w[0] != WAIT_PORT]
    assert commands == [
        (0x20, 0x11), (0xA0, 0x11),
        (0x21, OFFSET_PIC_MASTER), (0xA1, OFFSET_PIC_SLAVE),
        (0x21, 0b00000100), (0xA1, 0x02),
        (0x21, 0x01), (0xA1, 0x01),
        (0x21, 0x00), (0xA1, 0x00),
    ]
    assert bus.writes[1::2] == [(WAIT_PORT, 0)] * len(commands)


def test_eoi_master_only():
    bus = PortBus()
    Pic(bus).send_eoi(1)
    assert bus.writes == [(0x20, 0x20)]


def test_eoi_slave_and_master():
    bus = PortBus()
    Pic(bus).send_eoi(9)
    assert bus.writes == [(0xA0, 0x20), (WAIT_PORT, 0), (0x20, 0x20)]


def test_eoi_rejects_unknown_irq():
    with pytest.raises(ValueError):
        Pic(PortBus()).send_eoi(16)


def test_breakpoint_prints_rip():
    handler, _, driver = make_handler()
    handler.handle(IsrArgs(isr_number=3, rip=0x1234))
    assert driver.screen_text()[0] == "Breakpoint on instruction 0000000000001234 reached."
    assert handler.console.is_blue_screen is False


def test_divide_by_zero_halts_with_dump():
    handler, _, driver = make_handler()
    with pytest.raises(KernelHalt):
        handler.handle(IsrArgs(isr_number=0, rip=0x1234))
    rows = driver.screen_text()
    assert rows[0] == "An error has occurred:"
    assert rows[1] == "Divide by zero occurred:"
    assert rows[2] == "Registers dump:"
    assert rows[3] == "rip: 00001234"
    assert handler.console.is_blue_screen is True


def test_double_fault_halts():
    handler, _, driver = make_handler()
    with pytest.raises(KernelHalt):
        handler.handle(IsrArgs(isr_number=8))
    assert driver.screen_text()[1] == "Double fault occurred:"


def test_page_fault_reports_error_bits():
    handler, _, driver = make_handler()
    with pytest.raises(KernelHalt):
        handler.handle(IsrArgs(isr_number=0x0E, error_code=0b10, fault_address=0xDEAD))
    rows = driver.screen_text()
    assert rows[1] == "Page Fault Occurred"
    assert rows[2].startswith("Faulting address:") and "DEAD" in rows[2]
    write_row = next(row for row in rows if "is_write:" in row)
    present_row = next(row for row in rows if "is_present:" in row)
    assert write_row.endswith("1")
    assert present_row.endswith("0")


def test_general_protection_fault_without_segment():
    handler, _, driver = make_handler()
    handler.handle(IsrArgs(isr_number=0x0D, error_code=0))
    rows = driver.screen_text()
    assert rows[1] == "General Protection Fault Occurred"
    assert rows[2] == "The fault is not segment related"


def test_general_protection_fault_with_segment():
    handler, _, driver = make_handler()
    handler.handle(IsrArgs(isr_number=0x0D, error_code=5))
    assert driver.screen_text()[2] == "Segment violation error at segment 5"


def test_keyboard_irq_reads_scancode_and_acknowledges():
    handler, bus, _ = make_handler()
    bus.feed(0x60, [158])
    handler.handle(IsrArgs(isr_number=OFFSET_PIC_MASTER + 1))
    assert handler.keyboard.read_char() == "A"
    assert bus.writes[-1] == (0x20, 0x20)


def test_slave_irq_acknowledges_both():
    handler, bus, _ = make_handler()
    handler.handle(IsrArgs(isr_number=OFFSET_PIC_SLAVE + 4))
    assert bus.writes == [(0xA0, 0x20), (WAIT_PORT, 0), (0x20, 0x20)]


def test_unhandled_vector_does_nothing():
    handler, bus, driver = make_handler()
    handler.handle(IsrArgs(isr_number=5))
    assert bus.writes == []
    assert driver.screen_text() == [""] * len(driver.screen_text())