"""
Text output controller for delivering transcribed text.

Copies the text to the clipboard with the platform's clipboard tool and
then simulates the paste shortcut into the focused window. A failed paste
still leaves the text on the clipboard, so it degrades to copy-only.
"""

import subprocess
import time
from enum import Enum
from typing import List

from ...utils.logger import get_logger, preview
from ...utils.platform import (
    find_tool,
    get_clipboard_command,
    get_platform,
    get_subprocess_kwargs,
    is_wayland,
)
from ..errors import ClipboardError

logger = get_logger(__name__)


class DeliveryOutcome(Enum):
    PASTED = "pasted"
    COPIED_ONLY = "copied_only"


class PasteFailed(Exception):
    pass


class OutputDispatcher:

    def __init__(self, auto_paste: bool = True, paste_delay: float = 0.05):
        self.auto_paste = auto_paste
        self._paste_delay = paste_delay
        self._keyboard = None

    def deliver(self, text: str) -> DeliveryOutcome:
        logger.debug(f"Delivering text via clipboard: '{preview(text)}'")

        self.copy_to_clipboard(text)

        if not self.auto_paste:
            return DeliveryOutcome.COPIED_ONLY

        time.sleep(self._paste_delay)

        try:
            self._simulate_paste()
        except PasteFailed as e:
            logger.warning(f"Paste simulation unavailable, text left on clipboard: {e}")
            return DeliveryOutcome.COPIED_ONLY

        return DeliveryOutcome.PASTED

    def copy_to_clipboard(self, text: str) -> None:
        copy_cmd = get_clipboard_command()
        if copy_cmd is None:
            raise ClipboardError("No clipboard tool found (install wl-clipboard or xclip)")

        try:
            subprocess.run(
                copy_cmd,
                **get_subprocess_kwargs(input=text, text=True, timeout=2, check=True),
            )
        except (
            subprocess.TimeoutExpired,
            subprocess.CalledProcessError,
            OSError,
        ) as e:
            logger.error(f"Failed to set clipboard: {e}")
            raise ClipboardError(f"Failed to copy to clipboard: {e}") from e

    def _simulate_paste(self) -> None:
        if is_wayland():
            wtype = find_tool("wtype")
            if wtype:
                self._run_paste_tool([wtype, "-M", "ctrl", "v", "-m", "ctrl"])
                return

        self._paste_with_pynput()

    def _run_paste_tool(self, cmd: List[str]) -> None:
        try:
            subprocess.run(
                cmd,
                **get_subprocess_kwargs(capture_output=True, timeout=2, check=True),
            )
        except (
            subprocess.TimeoutExpired,
            subprocess.CalledProcessError,
            OSError,
        ) as e:
            raise PasteFailed(str(e)) from e

    def _paste_with_pynput(self) -> None:
        try:
            keyboard, paste_key = self._get_keyboard()
            with keyboard.pressed(paste_key):
                keyboard.tap("v")
        except PasteFailed:
            raise
        except Exception as e:
            raise PasteFailed(f"Keyboard simulation failed: {e}") from e

    def _get_keyboard(self):
        # pynput needs a display connection, so import lazily
        try:
            from pynput.keyboard import Controller as KeyboardController
            from pynput.keyboard import Key
        except Exception as e:
            raise PasteFailed(f"pynput unavailable: {e}") from e

        if self._keyboard is None:
            self._keyboard = KeyboardController()

        paste_key = Key.cmd if get_platform() == "macos" else Key.ctrl
        return self._keyboard, paste_key
