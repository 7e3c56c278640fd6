"""Interrupt descriptor table, PIC programming and interrupt dispatch."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import Iterable

from toykernel.console import Console
from toykernel.keyboard import PS2Keyboard
from toykernel.ports import PortBus

__all__ = [
    "IdtDescriptor",
    "Registers",
    "IsrArgs",
    "KernelHalt",
    "Pic",
    "InterruptHandler",
    "Vector",
    "build_idt",
    "idt_header_size",
    "is_pic_interrupt",
    "IDT_SIZE",
    "DESCRIPTOR_SIZE",
    "SEGMENT_SELECTOR",
    "GATE_TYPE_INTERRUPT",
    "GATE_TYPE_TRAP",
    "PRESENT",
    "DPL",
    "IST",
    "OFFSET_PIC_MASTER",
    "OFFSET_PIC_SLAVE",
    "PIC_IRQ_COUNT_PER_UNIT",
    "PIC_MASTER_COMMAND",
    "PIC_MASTER_DATA",
    "PIC_SLAVE_COMMAND",
    "PIC_SLAVE_DATA",
    "PIC_EOI_COMMAND_CODE",
    "KEYBOARD_IRQ",
]

IDT_SIZE = 256
DESCRIPTOR_SIZE = 16

SEGMENT_SELECTOR_RPL = 0
SEGMENT_SELECTOR_TI = 0
SEGMENT_SELECTOR_CODE_SEGMENT_IDX = 2
SEGMENT_SELECTOR = (
    (SEGMENT_SELECTOR_CODE_SEGMENT_IDX << 3)
    | (SEGMENT_SELECTOR_TI << 2)
    | SEGMENT_SELECTOR_RPL
)
IST = 0b00
RESERVED = 0b000000
GATE_TYPE_INTERRUPT = 0xE
GATE_TYPE_TRAP = 0xF
DPL = 0b00
PRESENT = 0b1

OFFSET_PIC_MASTER = 0x20
OFFSET_PIC_SLAVE = 0x28
PIC_IRQ_COUNT_PER_UNIT = 8

PIC_MASTER_COMMAND = 0x20
PIC_MASTER_DATA = 0x21
PIC_SLAVE_COMMAND = 0xA0
PIC_SLAVE_DATA = 0xA1
PIC_MASTER_IRQ_MASK_FOR_SLAVE = 0b00000100
PIC_SLAVE_IRQ_NUMBER_FOR_MASTER = 0x02
PIC_INIT_COMMAND = 0x11
PIC_X86_MODE = 0x01
PIC_EOI_COMMAND_CODE = 0x20

KEYBOARD_IRQ = 1

_ADDRESS_MAX = (1 << 64) - 1
_DESCRIPTOR_FORMAT = struct.Struct("<HHBBHII")


class Vector(enum.IntEnum):
    """CPU exception vectors the handler knows about."""

    DIVIDE_BY_ZERO = 0x00
    BREAKPOINT = 0x03
    DOUBLE_FAULT = 0x08
    GENERAL_PROTECTION_FAULT = 0x0D
    PAGE_FAULT = 0x0E


@dataclass(frozen=True)
class IdtDescriptor:
    """One 16-byte gate of the interrupt descriptor table."""

    offset_low: int
    segment_selector: int
    ist_plus_reserved_low: int
    gate_type_plus_zero_plus_dpl_plus_p: int
    offset_middle: int
    offset_high: int
    reserved_high: int = 0

    @classmethod
    def from_address(cls, address: int) -> IdtDescriptor:
        """A present interrupt gate in ring 0 pointing at ``address``."""
        if not 0 <= address <= _ADDRESS_MAX:
            raise ValueError(f"handler address {address:#x} is not a 64-bit address")
        return cls(
            offset_low=address & 0xFFFF,
            segment_selector=SEGMENT_SELECTOR,
            ist_plus_reserved_low=(RESERVED << 6) | IST,
            gate_type_plus_zero_plus_dpl_plus_p=(
                (PRESENT << 7) | (DPL << 5) | (0 << 4) | GATE_TYPE_INTERRUPT
            ),
            offset_middle=(address >> 16) & 0xFFFF,
            offset_high=(address >> 32) & 0xFFFFFFFF,
            reserved_high=0,
        )

    @property
    def address(self) -> int:
        """The handler address the gate points at."""
        return self.offset_low | (self.offset_middle << 16) | (self.offset_high << 32)

    def pack(self) -> bytes:
        """The gate in its in-memory layout."""
        return _DESCRIPTOR_FORMAT.pack(
            self.offset_low,
            self.segment_selector,
            self.ist_plus_reserved_low,
            self.gate_type_plus_zero_plus_dpl_plus_p,
            self.offset_middle,
            self.offset_high,
            self.reserved_high,
        )


def build_idt(handler_addresses: Iterable[int]) -> list[IdtDescriptor]:
    """Interrupt gates for the given handler addresses, one per vector."""
    addresses = list(handler_addresses)
    if len(addresses) > IDT_SIZE:
        raise ValueError(f"{len(addresses)} handlers exceed the {IDT_SIZE} IDT entries")
    return [IdtDescriptor.from_address(address) for address in addresses]


def idt_header_size(count: int = IDT_SIZE) -> int:
    """The limit field of the IDT header for ``count`` descriptors."""
    if not 1 <= count <= IDT_SIZE:
        raise ValueError(f"descriptor count {count} is outside 1..{IDT_SIZE}")
    return count * DESCRIPTOR_SIZE - 1


def is_pic_interrupt(isr_number: int) -> bool:
    """Whether ``isr_number`` is one of the vectors the PICs were remapped to."""
    return (
        OFFSET_PIC_MASTER <= isr_number < OFFSET_PIC_MASTER + PIC_IRQ_COUNT_PER_UNIT
        or OFFSET_PIC_SLAVE <= isr_number < OFFSET_PIC_SLAVE + PIC_IRQ_COUNT_PER_UNIT
    )


@dataclass
class Registers:
    """General-purpose registers saved on interrupt entry."""

    r15: int = 0
    r14: int = 0
    r13: int = 0
    r12: int = 0
    r11: int = 0
    r10: int = 0
    r9: int = 0
    r8: int = 0
    rbp: int = 0
    rsi: int = 0
    rdx: int = 0
    rcx: int = 0
    rbx: int = 0
    rax: int = 0
    rdi: int = 0


@dataclass
class IsrArgs:
    """Machine state handed to the interrupt handler.

    ``fault_address`` holds what CR2 reads during a page fault.
    """

    general_registers: Registers = field(default_factory=Registers)
    isr_number: int = 0
    error_code: int = 0
    rip: int = 0
    cs: int = 0
    rflags: int = 0
    rsp: int = 0
    ss: int = 0
    fault_address: int = 0


class KernelHalt(Exception):
    """Raised where the kernel stops the CPU for good after a fatal fault."""


class Pic:
    """The master/slave 8259 interrupt controller pair."""

    def __init__(self, bus: PortBus) -> None:
        self.bus = bus
        self.saved_masks: tuple[int, int] | None = None

    def _write(self, port: int, value: int) -> None:
        self.bus.write_byte(port, value)
        self.bus.wait()

    def remap(self) -> None:
        """Move the IRQs to vectors from 0x20 and unmask all of them."""
        self.saved_masks = (
            self.bus.read_byte(PIC_MASTER_DATA),
            self.bus.read_byte(PIC_SLAVE_DATA),
        )

        self._write(PIC_MASTER_COMMAND, PIC_INIT_COMMAND)
        self._write(PIC_SLAVE_COMMAND, PIC_INIT_COMMAND)

        self._write(PIC_MASTER_DATA, OFFSET_PIC_MASTER)
        self._write(PIC_SLAVE_DATA, OFFSET_PIC_SLAVE)

        self._write(PIC_MASTER_DATA, PIC_MASTER_IRQ_MASK_FOR_SLAVE)
        self._write(PIC_SLAVE_DATA, PIC_SLAVE_IRQ_NUMBER_FOR_MASTER)

        self._write(PIC_MASTER_DATA, PIC_X86_MODE)
        self._write(PIC_SLAVE_DATA, PIC_X86_MODE)

        self._write(PIC_MASTER_DATA, 0x00)
        self._write(PIC_SLAVE_DATA, 0x00)

    def send_eoi(self, irq_number: int) -> None:
        """Acknowledge ``irq_number``, at the slave too if it came from there."""
        if not 0 <= irq_number < 2 * PIC_IRQ_COUNT_PER_UNIT:
            raise ValueError(f"IRQ {irq_number} does not exist")
        if irq_number >= PIC_IRQ_COUNT_PER_UNIT:
            self._write(PIC_SLAVE_COMMAND, PIC_EOI_COMMAND_CODE)
        self.bus.write_byte(PIC_MASTER_COMMAND, PIC_EOI_COMMAND_CODE)


_DUMP_FORMAT = "Registers dump:\n%3s: %08x\n" + "%3s: %08x        %3s: %08x\n" * 8

_PAGE_FAULT_BITS = (
    "is_present",
    "is_write",
    "is_user",
    "is_reserved",
    "is_instruction_fetch",
    "is_protection_key",
    "is_shadow_stack",
    "is_software_guard_extension",
)
_PAGE_FAULT_FORMAT = "%27s:    %d\n" * len(_PAGE_FAULT_BITS)


class InterruptHandler:
    """Dispatches interrupts to the console, the PIC and the keyboard."""

    def __init__(self, console: Console, pic: Pic, keyboard: PS2Keyboard | None) -> None:
        self.console = console
        self.pic = pic
        self.keyboard = keyboard

    def _dump_registers(self, args: IsrArgs) -> None:
        regs = args.general_registers
        # r14 and r15 report r12 and r13, as the dump always has.
        self.console.printf(
            _DUMP_FORMAT,
            "rip", args.rip,
            "cs", args.cs, "ss", args.ss,
            "rsp", args.rsp, "rbp", regs.rbp,
            "rdi", regs.rdi, "rsi", regs.rsi,
            "rax", regs.rax, "rbx", regs.rbx,
            "rcx", regs.rcx, "rdx", regs.rdx,
            "r8", regs.r8, "r9", regs.r9,
            "r10", regs.r10, "r11", regs.r11,
            "r12", regs.r12, "r13", regs.r13,
            "r14", regs.r12, "r15", regs.r13,
        )

    def _fatal(self, message: str, args: IsrArgs) -> None:
        self.console.print_blue_screen(message)
        self._dump_registers(args)
        raise KernelHalt(message.strip())

    def _page_fault(self, args: IsrArgs) -> None:
        self.console.print_blue_screen(
            "Page Fault Occurred\nFaulting address: %p\n", args.fault_address
        )
        self._dump_registers(args)
        values: list[object] = []
        for bit, name in enumerate(_PAGE_FAULT_BITS):
            values.extend((name, (args.error_code >> bit) & 1))
        self.console.printf(_PAGE_FAULT_FORMAT, *values)
        raise KernelHalt("Page Fault Occurred")

    def _general_protection_fault(self, args: IsrArgs) -> None:
        self.console.print_blue_screen("General Protection Fault Occurred\n")
        if args.error_code == 0:
            self.console.printf("The fault is not segment related\n")
        else:
            self.console.printf("Segment violation error at segment %llu\n", args.error_code)

    def _pic_interrupt(self, args: IsrArgs) -> None:
        isr_number = args.isr_number & 0xFF
        if OFFSET_PIC_MASTER <= isr_number < OFFSET_PIC_MASTER + PIC_IRQ_COUNT_PER_UNIT:
            irq_number = isr_number - OFFSET_PIC_MASTER
        else:
            irq_number = PIC_IRQ_COUNT_PER_UNIT + isr_number - OFFSET_PIC_SLAVE

        if irq_number == KEYBOARD_IRQ and self.keyboard is not None:
            self.keyboard.handle_scancode()

        self.pic.send_eoi(irq_number)

    def handle(self, args: IsrArgs) -> None:
        """Handle the interrupt described by ``args``.

        Raises :class:`KernelHalt` for the faults after which the kernel
        cannot go on.
        """
        if is_pic_interrupt(args.isr_number):
            self._pic_interrupt(args)
            return

        vector = args.isr_number
        if vector == Vector.DIVIDE_BY_ZERO:
            self._fatal("Divide by zero occurred:\n", args)
        elif vector == Vector.BREAKPOINT:
            self.console.printf("Breakpoint on instruction %p reached.\n", args.rip)
        elif vector == Vector.DOUBLE_FAULT:
            self._fatal("Double fault occurred:\n", args)
        elif vector == Vector.PAGE_FAULT:
            self._page_fault(args)
        elif vector == Vector.GENERAL_PROTECTION_FAULT:
            self._general_protection_fault(args)