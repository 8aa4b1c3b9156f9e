"""
Hotkey listener for global keyboard shortcuts.

Uses pynput. Each press of the configured combination emits one
``triggered`` signal; holding the keys does not repeat it.
"""

from typing import Optional, Set

from PySide6.QtCore import QObject, Signal

from ...utils.logger import get_logger
from ..settings.settings import HotkeyConfig

logger = get_logger(__name__)

MODIFIER_KEYS = {
    "ctrl": ("ctrl_l", "ctrl_r", "ctrl"),
    "alt": ("alt_l", "alt_r", "alt", "alt_gr"),
    "shift": ("shift_l", "shift_r", "shift"),
    "cmd": ("cmd_l", "cmd_r", "cmd"),
    "meta": ("cmd_l", "cmd_r", "cmd"),
}


class HotkeyListener(QObject):
    """
    Listens for the record/stop hotkey.

    Signals:
        triggered: Emitted once each time the hotkey combination goes down
    """

    triggered = Signal()

    def __init__(self, hotkey: HotkeyConfig, parent: Optional[QObject] = None):
        super().__init__(parent)

        self._is_hotkey_active = False
        self._keyboard_listener = None
        self._pressed_keys: set = set()
        self.update_hotkey(hotkey)

    def update_hotkey(self, hotkey: HotkeyConfig) -> None:
        self._required_modifier_types: Set[str] = set(hotkey.modifiers)
        self._trigger_key_name = hotkey.key
        self._trigger_key = None

    def start(self) -> None:
        from pynput import keyboard

        self._keyboard_listener = keyboard.Listener(
            on_press=self._on_press, on_release=self._on_release
        )
        self._keyboard_listener.start()

        if hasattr(self._keyboard_listener, "IS_TRUSTED"):
            logger.info(
                f"Keyboard listener IS_TRUSTED: {self._keyboard_listener.IS_TRUSTED}"
            )
            if not self._keyboard_listener.IS_TRUSTED:
                logger.warning(
                    "Hotkey listener is NOT TRUSTED. Accessibility permissions not granted."
                )

    def stop(self) -> None:
        if self._keyboard_listener:
            self._keyboard_listener.stop()
            self._keyboard_listener = None

    def _resolve_trigger_key(self):
        from pynput import keyboard

        if self._trigger_key is None:
            try:
                self._trigger_key = getattr(keyboard.Key, self._trigger_key_name)
            except AttributeError:
                self._trigger_key = keyboard.KeyCode.from_char(self._trigger_key_name)
        return self._trigger_key

    def _check_hotkey(self) -> bool:
        from pynput import keyboard

        if self._resolve_trigger_key() not in self._pressed_keys:
            return False

        for mod_type in self._required_modifier_types:
            names = MODIFIER_KEYS.get(mod_type, ())
            keys = [getattr(keyboard.Key, name, None) for name in names]
            if not any(key is not None and key in self._pressed_keys for key in keys):
                return False

        return True

    def _on_press(self, key) -> None:
        self._pressed_keys.add(key)

        if self._check_hotkey() and not self._is_hotkey_active:
            self._is_hotkey_active = True
            self.triggered.emit()

    def _on_release(self, key) -> None:
        self._pressed_keys.discard(key)

        if not self._check_hotkey():
            self._is_hotkey_active = False
