import pytest

from toykernel.scancodes import KeyEvent, KeyEventType, parse_scancode


def test_digit_one_pressed():
    assert parse_scancode(2) == KeyEvent(KeyEventType.PRESSED, "1")


def test_escape_released():
    assert parse_scancode(129) == KeyEvent(KeyEventType.RELEASED, "\x1b")


def test_zero_code_is_invalid():
    assert parse_scancode(0).event_type is KeyEventType.INVALID


def test_tab_release_and_pressed_q_quirk():
    assert parse_scancode(143) == KeyEvent(KeyEventType.RELEASED, "\t")
    assert parse_scancode(15) == KeyEvent(KeyEventType.PRESSED, "Q")


def test_released_letters_spell_top_row():
    keys = "".join(parse_scancode(code).key for code in range(144, 154))
    assert keys == "QWERTYUIOP"


def test_pressed_keypad_run():
    keys = "".join(parse_scancode(code).key for code in range(70, 83))
    assert keys == "789-456+1230."


@pytest.mark.parametrize("code", range(256))
def test_invalid_events_have_no_key(code):
    event = parse_scancode(code)
    assert (event.event_type is KeyEventType.INVALID) == (event.key is None)


@pytest.mark.parametrize("code", range(256))
def test_press_and_release_halves(code):
    event = parse_scancode(code)
    if event.event_type is KeyEventType.PRESSED:
        assert code < 0x80
    elif event.event_type is KeyEventType.RELEASED:
        assert code >= 0x80
    else:
        assert event == KeyEvent(KeyEventType.INVALID)


@pytest.mark.parametrize("code", [0xE0, 0xF0, 0xFF])
def test_extended_range_is_invalid(code):
    assert parse_scancode(code) == KeyEvent(KeyEventType.INVALID)


@pytest.mark.parametrize("code", [57, 68, 86, 100, 186, 215])
def test_function_and_lock_keys_are_invalid(code):
    assert parse_scancode(code).event_type is KeyEventType.INVALID


@pytest.mark.parametrize("code", [-1, 256, 1000])
def test_out_of_byte_range_raises(code):
    with pytest.raises(ValueError):
        parse_scancode(code)


def test_events_are_immutable():
    event = parse_scancode(2)
    with pytest.raises(AttributeError):
        event.key = "x"
    assert parse_scancode(2).key == "1"