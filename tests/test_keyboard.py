from toykernel.keyboard import BUFFER_SIZE, DEFAULT_DATA_PORT, PS2Keyboard
from toykernel.ports import PortBus
from toykernel.scancodes import KeyEventType, parse_scancode


def _keyboard(codes, port=DEFAULT_DATA_PORT):
    bus = PortBus()
    bus.feed(port, codes)
    return PS2Keyboard(bus, port)


def test_default_data_port():
    assert DEFAULT_DATA_PORT == 0x60
    assert PS2Keyboard(PortBus()).data_port == 0x60


def test_release_queues_character():
    kb = _keyboard([158])
    kb.handle_scancode()
    assert kb.read_char() == "A"


def test_press_is_ignored():
    kb = _keyboard([29])
    kb.handle_scancode()
    assert kb.read_char() is None


def test_invalid_code_is_ignored():
    kb = _keyboard([0, 0xE0])
    kb.handle_scancode()
    kb.handle_scancode()
    assert kb.read_char() is None


def test_empty_read_returns_none():
    assert PS2Keyboard(PortBus()).read_char() is None


def test_characters_come_out_in_order():
    codes = [c for c in range(129, 212) if parse_scancode(c).event_type is KeyEventType.RELEASED]
    kb = _keyboard(codes)
    for _ in codes:
        kb.handle_scancode()
    got = [kb.read_char() for _ in codes]
    assert got == [parse_scancode(c).key for c in codes]
    assert kb.read_char() is None


def test_uses_configured_port():
    bus = PortBus()
    bus.feed(0x64, [158])
    bus.feed(0x60, [0])
    kb = PS2Keyboard(bus, 0x64)
    kb.handle_scancode()
    assert kb.read_char() == parse_scancode(158).key


def test_overflow_drops_new_characters():
    first = 158
    later = 130
    kb = _keyboard([first] * BUFFER_SIZE + [later])
    for _ in range(BUFFER_SIZE + 1):
        kb.handle_scancode()
    chars = [kb.read_char() for _ in range(BUFFER_SIZE + 1)]
    assert chars[:BUFFER_SIZE] == [parse_scancode(first).key] * BUFFER_SIZE
    assert chars[BUFFER_SIZE] is None