"""Application runtime."""

import signal
import sys
from concurrent.futures import Future
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal
from PySide6.QtWidgets import QApplication

from talkpaste import __app_name__, __version__
from talkpaste.core.asr import create_backend
from talkpaste.core.audio import CaptureSource
from talkpaste.core.errors import TalkPasteError
from talkpaste.core.input import HotkeyListener
from talkpaste.core.output import DeliveryOutcome, OutputDispatcher, play_notification
from talkpaste.core.session import Session, SessionState, SessionStateMachine
from talkpaste.core.settings import JsonHistorySink, Settings, get_settings
from talkpaste.ui.tray import SystemTray, TrayStatus
from talkpaste.utils.logger import get_logger, shutdown_logging

logger = get_logger(__name__)

STATUS_MAP = {
    SessionState.IDLE: TrayStatus.IDLE,
    SessionState.RECORDING: TrayStatus.RECORDING,
    SessionState.TRANSCRIBING: TrayStatus.TRANSCRIBING,
    SessionState.ERROR: TrayStatus.ERROR,
}


class TalkPasteApp(QObject):

    # State machine callbacks fire on worker threads; these re-emit them
    # on the GUI thread.
    state_changed = Signal(object, object)
    result_ready = Signal(object, object)
    backend_ready = Signal(bool, str)

    def __init__(self, settings: Optional[Settings] = None):
        super().__init__()

        self._settings = settings or get_settings()

        self._tray = SystemTray(__app_name__)
        self._history = JsonHistorySink()
        self._dispatcher = OutputDispatcher(auto_paste=self._settings.auto_paste)
        self._capture = CaptureSource(
            sample_rate=self._settings.sample_rate,
            channels=self._settings.channels,
            device=self._settings.input_device,
        )
        self._machine = SessionStateMachine(
            capture=self._capture,
            backend=create_backend(self._settings),
            dispatcher=self._dispatcher,
            history=self._history,
            max_recording_seconds=self._settings.max_recording_seconds,
            on_state_change=self.state_changed.emit,
            on_result=self.result_ready.emit,
        )
        self._hotkey_listener = HotkeyListener(self._settings.hotkey)
        self._backend_checked = False

        self.state_changed.connect(self._on_state_changed)
        self.result_ready.connect(self._on_result)
        self.backend_ready.connect(self._on_backend_ready)

        self._hotkey_listener.triggered.connect(self._on_trigger)
        self._tray.toggle_requested.connect(self._on_trigger)
        self._tray.cancel_requested.connect(self._machine.cancel_recording)
        self._tray.dismiss_requested.connect(self._machine.acknowledge_error)
        self._tray.copy_requested.connect(self._copy_history_entry)
        self._tray.quit_requested.connect(self._quit)

    @property
    def machine(self) -> SessionStateMachine:
        return self._machine

    def _on_trigger(self) -> None:
        state = self._machine.trigger()
        logger.debug(f"Trigger handled, state={state.name}")

    def _on_state_changed(self, state: SessionState, session: Optional[Session]) -> None:
        if state == SessionState.IDLE and not self._backend_checked:
            self._tray.set_status(TrayStatus.LOADING, "Loading model...")
            return

        message = ""
        if state == SessionState.ERROR and session is not None and session.error:
            message = session.error.message
            self._tray.show_message(__app_name__, message, error=True)

        self._tray.set_status(STATUS_MAP[state], message)

    def _on_result(self, result, outcome: Optional[DeliveryOutcome]) -> None:
        if not result.ok:
            return

        self._tray.set_history(self._history.recent())

        if outcome == DeliveryOutcome.COPIED_ONLY and self._settings.auto_paste:
            self._tray.show_message(
                __app_name__, "Copied to clipboard (paste manually)"
            )

        if self._settings.notify_sound:
            play_notification()

    def _on_backend_ready(self, success: bool, message: str) -> None:
        self._backend_checked = True
        if success:
            logger.info(f"Backend ready: {message}")
        else:
            logger.error(f"Backend not ready: {message}")
            self._tray.show_message(__app_name__, message, error=True)

        if self._machine.state == SessionState.IDLE:
            self._tray.set_status(TrayStatus.IDLE)

    def _copy_history_entry(self, text: str) -> None:
        try:
            self._dispatcher.copy_to_clipboard(text)
        except TalkPasteError as e:
            self._tray.show_message(__app_name__, e.message, error=True)

    def _warm_up(self) -> None:
        logger.info("Preparing transcription backend...")
        future = self._machine.warm_up()
        future.add_done_callback(self._on_warm_up_done)

    def _on_warm_up_done(self, future: Future) -> None:
        error = future.exception()
        if error is None:
            self.backend_ready.emit(True, self._machine.backend.kind.value)
        else:
            self.backend_ready.emit(False, str(error))

    def _quit(self) -> None:
        logger.info("Shutting down application")
        self._hotkey_listener.stop()
        self._machine.shutdown(wait=False)
        self._tray.hide()
        QApplication.quit()
        logger.info("Application shutdown complete")

    def run(self) -> None:
        logger.info(f"Starting {__app_name__} v{__version__}")
        logger.info(
            f"Settings: backend={self._settings.backend}, "
            f"model={self._machine.backend.model}, "
            f"device={self._settings.input_device or 'default'}"
        )

        if self._settings.backend == "cloud" and not self._settings.api_key:
            logger.warning("No API key set; cloud transcription will fail")

        self._tray.set_history(self._history.recent())

        logger.info(
            f"Starting hotkey listener: {self._settings.hotkey.to_display_string()}"
        )
        self._hotkey_listener.start()

        QTimer.singleShot(100, self._warm_up)

        logger.info("Application initialization complete")


def main():
    app = QApplication(sys.argv)
    app.setApplicationName(__app_name__)
    app.setQuitOnLastWindowClosed(False)
    signal.signal(signal.SIGINT, lambda *args: QApplication.quit())

    talkpaste_app = TalkPasteApp()
    talkpaste_app.run()

    exit_code = app.exec()
    shutdown_logging()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
