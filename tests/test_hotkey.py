import sys
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from talkpaste.core.input import HotkeyListener
from talkpaste.core.settings import HotkeyConfig

KEY_NAMES = [
    "ctrl", "ctrl_l", "ctrl_r",
    "alt", "alt_l", "alt_r", "alt_gr",
    "shift", "shift_l", "shift_r",
    "cmd", "cmd_l", "cmd_r",
    "space", "f9",
]


@pytest.fixture
def fake_pynput():
    keyboard = SimpleNamespace(
        Key=SimpleNamespace(**{name: f"Key.{name}" for name in KEY_NAMES}),
        KeyCode=SimpleNamespace(from_char=lambda char: f"char:{char}"),
        Listener=MagicMock(),
    )
    module = SimpleNamespace(keyboard=keyboard)
    with patch.dict(sys.modules, {"pynput": module, "pynput.keyboard": keyboard}):
        yield keyboard


def make_listener(modifiers=("ctrl",), key="space"):
    listener = HotkeyListener(HotkeyConfig(modifiers=list(modifiers), key=key))
    fired = []
    listener.triggered.connect(lambda: fired.append(True))
    return listener, fired


def test_combination_triggers_once(fake_pynput):
    listener, fired = make_listener()

    listener._on_press("Key.ctrl_l")
    listener._on_press("Key.space")
    listener._on_press("Key.space")

    assert len(fired) == 1


def test_each_press_triggers(fake_pynput):
    listener, fired = make_listener()

    listener._on_press("Key.ctrl_r")
    listener._on_press("Key.space")
    listener._on_release("Key.space")
    listener._on_press("Key.space")

    assert len(fired) == 2


def test_missing_modifier(fake_pynput):
    listener, fired = make_listener(modifiers=("ctrl", "alt"))

    listener._on_press("Key.ctrl_l")
    listener._on_press("Key.space")

    assert fired == []


def test_character_key(fake_pynput):
    listener, fired = make_listener(modifiers=("alt",), key="r")

    listener._on_press("Key.alt_gr")
    listener._on_press("char:r")

    assert len(fired) == 1


def test_update_hotkey(fake_pynput):
    listener, fired = make_listener()
    listener.update_hotkey(HotkeyConfig(modifiers=["shift"], key="f9"))

    listener._on_press("Key.ctrl_l")
    listener._on_press("Key.space")
    assert fired == []

    listener._on_press("Key.shift")
    listener._on_press("Key.f9")
    assert len(fired) == 1


def test_start_and_stop(fake_pynput):
    listener, _ = make_listener()

    listener.start()
    keyboard_listener = fake_pynput.Listener.return_value
    keyboard_listener.start.assert_called_once()

    listener.stop()
    keyboard_listener.stop.assert_called_once()
