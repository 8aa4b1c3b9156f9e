"""
System tray icon and menu using PySide6.

Shows the session status as a coloured dot and offers the record/stop,
cancel and dismiss-error actions plus recent transcriptions.
"""

from enum import Enum, auto
from typing import Dict, List, Optional

from PySide6.QtCore import QObject, Qt, Signal
from PySide6.QtGui import QAction, QBrush, QColor, QIcon, QPainter, QPen, QPixmap
from PySide6.QtWidgets import QMenu, QSystemTrayIcon

from ..core.settings.history import HistoryEntry


class TrayStatus(Enum):
    IDLE = auto()
    LOADING = auto()
    RECORDING = auto()
    TRANSCRIBING = auto()
    ERROR = auto()


STATUS_COLORS: Dict[TrayStatus, str] = {
    TrayStatus.IDLE: "#dc2626",
    TrayStatus.LOADING: "#6b7280",
    TrayStatus.RECORDING: "#16a34a",
    TrayStatus.TRANSCRIBING: "#d97706",
    TrayStatus.ERROR: "#7f1d1d",
}

HISTORY_LABEL_LENGTH = 60


class SystemTray(QObject):
    """
    System tray icon with context menu.

    Signals:
        toggle_requested: "Record" / "Stop" clicked
        cancel_requested: "Cancel recording" clicked
        dismiss_requested: "Dismiss error" clicked
        copy_requested: a history entry was picked (entry text)
        quit_requested: "Quit" clicked
    """

    toggle_requested = Signal()
    cancel_requested = Signal()
    dismiss_requested = Signal()
    copy_requested = Signal(str)
    quit_requested = Signal()

    def __init__(self, app_name: str, parent: Optional[QObject] = None):
        super().__init__(parent)

        self._app_name = app_name
        self._status = TrayStatus.LOADING
        self._message = ""

        self._tray_icon = QSystemTrayIcon(self)
        self._menu = QMenu()

        self._status_action = QAction("Loading...", self._menu)
        self._status_action.setEnabled(False)
        self._menu.addAction(self._status_action)
        self._menu.addSeparator()

        self._toggle_action = QAction("Record", self._menu)
        self._toggle_action.triggered.connect(self.toggle_requested.emit)
        self._menu.addAction(self._toggle_action)

        self._cancel_action = QAction("Cancel recording", self._menu)
        self._cancel_action.triggered.connect(self.cancel_requested.emit)
        self._menu.addAction(self._cancel_action)

        self._dismiss_action = QAction("Dismiss error", self._menu)
        self._dismiss_action.triggered.connect(self.dismiss_requested.emit)
        self._menu.addAction(self._dismiss_action)

        self._menu.addSeparator()
        self._history_menu = self._menu.addMenu("Recent")

        self._menu.addSeparator()
        quit_action = QAction("Quit", self._menu)
        quit_action.triggered.connect(self.quit_requested.emit)
        self._menu.addAction(quit_action)

        self._tray_icon.setContextMenu(self._menu)
        self._tray_icon.activated.connect(self._on_activated)

        self.set_status(TrayStatus.LOADING)
        self.set_history([])
        self._tray_icon.show()

    @property
    def status(self) -> TrayStatus:
        return self._status

    def set_status(self, status: TrayStatus, message: str = "") -> None:
        self._status = status
        self._message = message

        status_texts = {
            TrayStatus.IDLE: "Ready",
            TrayStatus.LOADING: message or "Loading...",
            TrayStatus.RECORDING: "Recording...",
            TrayStatus.TRANSCRIBING: "Transcribing...",
            TrayStatus.ERROR: f"Error: {message}" if message else "Error",
        }
        self._status_action.setText(status_texts[status])

        self._toggle_action.setText("Stop" if status == TrayStatus.RECORDING else "Record")
        self._toggle_action.setEnabled(
            status in (TrayStatus.IDLE, TrayStatus.RECORDING, TrayStatus.LOADING)
        )
        self._cancel_action.setVisible(status == TrayStatus.RECORDING)
        self._dismiss_action.setVisible(status == TrayStatus.ERROR)

        self._update_icon()

    def set_history(self, entries: List[HistoryEntry]) -> None:
        self._history_menu.clear()

        if not entries:
            empty = QAction("No transcriptions yet.", self._history_menu)
            empty.setEnabled(False)
            self._history_menu.addAction(empty)
            return

        for entry in entries:
            label = entry.text.replace("\n", " ")
            if len(label) > HISTORY_LABEL_LENGTH:
                label = label[:HISTORY_LABEL_LENGTH] + "..."
            action = QAction(label or "(empty)", self._history_menu)
            action.triggered.connect(
                lambda checked=False, text=entry.text: self.copy_requested.emit(text)
            )
            self._history_menu.addAction(action)

    def show_message(self, title: str, message: str, error: bool = False) -> None:
        icon = (
            QSystemTrayIcon.MessageIcon.Warning
            if error
            else QSystemTrayIcon.MessageIcon.Information
        )
        self._tray_icon.showMessage(title, message, icon, 3000)

    def hide(self) -> None:
        self._tray_icon.hide()

    def _on_activated(self, reason) -> None:
        if reason == QSystemTrayIcon.ActivationReason.Trigger:
            if self._status == TrayStatus.ERROR:
                self.dismiss_requested.emit()
            else:
                self.toggle_requested.emit()

    def _update_icon(self) -> None:
        size = 22
        pixmap = QPixmap(size, size)
        pixmap.fill(Qt.transparent)

        painter = QPainter(pixmap)
        painter.setRenderHint(QPainter.Antialiasing)

        color = QColor(STATUS_COLORS.get(self._status, "#808080"))
        painter.setBrush(QBrush(color))
        painter.setPen(QPen(color.darker(120), 1))

        margin = 2
        painter.drawEllipse(margin, margin, size - 2 * margin, size - 2 * margin)

        # For error state, add an X overlay
        if self._status == TrayStatus.ERROR:
            painter.setPen(QPen(QColor("#FFFFFF"), 2))
            inner_margin = 6
            painter.drawLine(inner_margin, inner_margin, size - inner_margin, size - inner_margin)
            painter.drawLine(size - inner_margin, inner_margin, inner_margin, size - inner_margin)

        painter.end()

        self._tray_icon.setIcon(QIcon(pixmap))
        tooltip = f"{self._app_name} - {self._status_action.text()}"
        self._tray_icon.setToolTip(tooltip)
