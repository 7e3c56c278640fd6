# toykernel

A hobby x86-64 kernel modelled in pure Python. Wherever the kernel would
touch hardware, it works on in-memory stand-ins: a simulated I/O port bus,
a `bytearray` for VGA text memory, and a queue of scancodes for the
keyboard. You can boot it, type on its keyboard and read its screen from
ordinary Python code.

## What is inside

- `toykernel.printf`: `vsnprintf(size, fmt, args)`, `snprintf(size, fmt, *args)`
  and `sprintf(fmt, *args)`. They cover the flags `# 0 - + space`, width
  and precision (including `*`), the length modifiers `hh h l ll j t z`,
  and the conversions `d i u x X o b c s p %`. `vsnprintf` and `snprintf`
  keep at most `size - 1` characters (`None` means no limit) and return
  the kept text together with the length the full output would have.
  Unknown conversions print their character; `%n` prints nothing.
- `toykernel.formatspec`: `parse_specifier` parses one `%` specification
  into a `Specifier` (with the `Length`, `Conversion` and `Flag` enums);
  `fetch_integer` takes its integer argument, cut to the width of the
  length modifier.
- `toykernel.memory`: `memset`, `memset_word`, `memcpy` and `strlen` over
  `bytearray` buffers, raising `IndexError` on out-of-range access.
- `toykernel.intmath`: 64-bit division and remainder with two's-complement
  semantics: `udivmoddi4`, `udivdi3`, `umoddi3`, `divdi3`, `moddi3`.
  Division by zero raises `ZeroDivisionError`.
- `toykernel.ringbuffer`: `RingBuffer`, a byte FIFO whose size must be a
  power of two, with `try_write`, `force_write`, `read`, `is_empty`,
  `is_full` and `remaining_space`. `RingBufferFullError` is raised when
  data does not fit.
- `toykernel.ports`: `PortBus`, a simulated 16-bit I/O port space that
  records every write and replays values queued with `feed`.
- `toykernel.scancodes`: `parse_scancode` turns a scancode byte into a
  `KeyEvent` (`KeyEventType.PRESSED`, `RELEASED` or `INVALID`).
- `toykernel.keyboard`: `PS2Keyboard` reads scancodes from its data port
  and buffers a character each time a key is released; `read_char`
  returns the oldest one or `None`.
- `toykernel.vga`: `VgaTextDriver`, an 80x25 text screen drawn from a
  40-line shadow buffer, with `init`, `print_string`, `clear`, `flush`
  and `screen_text`. The hardware cursor is moved through the bus.
- `toykernel.console`: `Console`, with `printf`, coloured status lines
  through `report` and `ReportStatus`, and the blue error screen through
  `print_blue_screen`.
- `toykernel.interrupts`: `IdtDescriptor` and `build_idt`, the 8259 pair
  as `Pic` (`remap`, `send_eoi`), and `InterruptHandler`, which dispatches
  an `IsrArgs` to the keyboard, the PIC and the console. Fatal faults
  (divide by zero, double fault, page fault) print the error screen and
  raise `KernelHalt`.
- `toykernel.boot`: `update_gdt` sets the long-mode flags on code segments
  given as `GdtDescriptor` values; `PageTableBuilder` writes four-level
  identity-mapping page tables into a `bytearray` standing for physical
  memory.
- `toykernel.kernel`: `Machine`, which wires all of the above together,
  and the `main` command.

## Installing

```
pip install .
```

## Formatting strings

```python
from toykernel.printf import snprintf, sprintf

sprintf("%#020x", 305441741)      # '0x00000000001234abcd'
sprintf("%-5d|", -42)             # '-42  |'
snprintf(3, "%d", -1000)          # ('-1', 5): truncated text, full length
```

## Driving the machine

```python
from toykernel.kernel import Machine

machine = Machine()
machine.boot()
machine.press(0x9E)               # release of the 'A' key
machine.echo_pending()            # 'A'
print(machine.driver.screen_text())
```

`boot` sets up the keyboard and console, reports long mode, builds the IDT,
remaps the PIC, handles a breakpoint interrupt and reports that control is
back with the kernel. `press` delivers one scancode as keyboard IRQ 1;
`echo_pending` prints every buffered character and returns them.

## Command line

```
toykernel
toykernel 0x9E 0x92
```

This boots the simulated machine, delivers the given scancodes (decimal or
`0x`-prefixed), echoes the typed characters and prints the resulting
screen rows.

## What it does not do

Nothing here runs on a real machine or executes machine code: ports,
screen memory, keyboard input and physical memory are all simulated, and
interrupts happen only when `InterruptHandler.handle` is called. Instead
of halting, reading a key returns `None` when none is waiting, and the
kernel's endless echo loop is replaced by `Machine.echo_pending`.
Floating-point conversions are not supported by the formatter.

## Running the tests

```
pip install .[test]
pytest
```