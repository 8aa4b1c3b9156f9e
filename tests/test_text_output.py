import subprocess
from unittest.mock import MagicMock, patch

import pytest

from talkpaste.core.errors import ClipboardError
from talkpaste.core.output.text_output import (
    DeliveryOutcome,
    OutputDispatcher,
    PasteFailed,
)

MODULE = "talkpaste.core.output.text_output"


@pytest.fixture
def clipboard():
    with (
        patch(f"{MODULE}.get_clipboard_command", return_value=["xclip", "-selection", "clipboard"]),
        patch(f"{MODULE}.subprocess.run") as mock_run,
        patch(f"{MODULE}.is_wayland", return_value=False),
    ):
        yield mock_run


class TestClipboard:
    def test_copy_uses_tool(self, clipboard):
        OutputDispatcher().copy_to_clipboard("hello")

        args, kwargs = clipboard.call_args
        assert args[0] == ["xclip", "-selection", "clipboard"]
        assert kwargs["input"] == "hello"
        assert kwargs["check"] is True

    def test_no_tool(self):
        with patch(f"{MODULE}.get_clipboard_command", return_value=None):
            with pytest.raises(ClipboardError):
                OutputDispatcher().copy_to_clipboard("hello")

    def test_tool_fails(self, clipboard):
        clipboard.side_effect = subprocess.CalledProcessError(1, "xclip")

        with pytest.raises(ClipboardError):
            OutputDispatcher().copy_to_clipboard("hello")

    def test_tool_times_out(self, clipboard):
        clipboard.side_effect = subprocess.TimeoutExpired("xclip", 2)

        with pytest.raises(ClipboardError):
            OutputDispatcher().copy_to_clipboard("hello")


class TestDeliver:
    def test_pasted(self, clipboard):
        keyboard = MagicMock()
        dispatcher = OutputDispatcher(paste_delay=0)

        with patch.object(dispatcher, "_get_keyboard", return_value=(keyboard, "ctrl")):
            outcome = dispatcher.deliver("hello")

        assert outcome == DeliveryOutcome.PASTED
        keyboard.pressed.assert_called_once_with("ctrl")
        keyboard.tap.assert_called_once_with("v")

    def test_auto_paste_disabled(self, clipboard):
        dispatcher = OutputDispatcher(auto_paste=False)

        with patch.object(dispatcher, "_simulate_paste") as mock_paste:
            outcome = dispatcher.deliver("hello")

        assert outcome == DeliveryOutcome.COPIED_ONLY
        mock_paste.assert_not_called()
        clipboard.assert_called_once()

    def test_paste_unavailable_degrades(self, clipboard):
        dispatcher = OutputDispatcher(paste_delay=0)

        with patch.object(
            dispatcher, "_get_keyboard", side_effect=PasteFailed("no display")
        ):
            outcome = dispatcher.deliver("hello")

        assert outcome == DeliveryOutcome.COPIED_ONLY
        assert clipboard.call_args.kwargs["input"] == "hello"

    def test_keyboard_error_degrades(self, clipboard):
        keyboard = MagicMock()
        keyboard.tap.side_effect = RuntimeError("no focused window")
        dispatcher = OutputDispatcher(paste_delay=0)

        with patch.object(dispatcher, "_get_keyboard", return_value=(keyboard, "ctrl")):
            outcome = dispatcher.deliver("hello")

        assert outcome == DeliveryOutcome.COPIED_ONLY

    def test_clipboard_failure_is_raised(self):
        with patch(f"{MODULE}.get_clipboard_command", return_value=None):
            with pytest.raises(ClipboardError):
                OutputDispatcher().deliver("hello")

    def test_wayland_uses_wtype(self, clipboard):
        dispatcher = OutputDispatcher(paste_delay=0)

        with (
            patch(f"{MODULE}.is_wayland", return_value=True),
            patch(f"{MODULE}.find_tool", return_value="wtype"),
        ):
            outcome = dispatcher.deliver("hello")

        assert outcome == DeliveryOutcome.PASTED
        assert clipboard.call_args_list[-1].args[0] == [
            "wtype", "-M", "ctrl", "v", "-m", "ctrl"
        ]

    def test_wtype_failure_degrades(self, clipboard):
        clipboard.side_effect = [None, FileNotFoundError("wtype")]
        dispatcher = OutputDispatcher(paste_delay=0)

        with (
            patch(f"{MODULE}.is_wayland", return_value=True),
            patch(f"{MODULE}.find_tool", return_value="wtype"),
        ):
            outcome = dispatcher.deliver("hello")

        assert outcome == DeliveryOutcome.COPIED_ONLY

    def test_clipboard_permission_denied(self, clipboard):
        clipboard.side_effect = PermissionError(13, "Permission denied")

        with pytest.raises(ClipboardError):
            OutputDispatcher(paste_delay=0).deliver("hello")

    def test_wtype_permission_denied_degrades(self, clipboard):
        clipboard.side_effect = [None, PermissionError(13, "Permission denied")]
        dispatcher = OutputDispatcher(paste_delay=0)

        with (
            patch(f"{MODULE}.is_wayland", return_value=True),
            patch(f"{MODULE}.find_tool", return_value="wtype"),
        ):
            outcome = dispatcher.deliver("hello")

        assert outcome == DeliveryOutcome.COPIED_ONLY
