"""
Debug console window.

Toolbar (level toggles, search, regex, AND/OR, display toggles, copy, clear,
save/load) above a LogConsoleView, wired to a ConsoleController over a
LogStore. Live output reaches the store through a SessionTracker, either
directly (append_output, or tracker.handle_protocol_message for adapter
messages) or from a StreamReader thread (attach_stream).
"""

import logging
from pathlib import Path
from typing import Dict, Optional, TextIO

from PyQt6.QtCore import pyqtSignal, pyqtSlot
from PyQt6.QtGui import QAction
from PyQt6.QtWidgets import (
    QApplication, QCheckBox, QFileDialog, QHBoxLayout, QLabel, QLineEdit, QMainWindow,
    QMessageBox, QPushButton, QVBoxLayout, QWidget,
)

from pyqt_logconsole.core.stream_reader import StreamReader
from pyqt_logconsole.io.snapshot import write_snapshot
from pyqt_logconsole.models import LogLevel
from pyqt_logconsole.services.console_controller import ConsoleController
from pyqt_logconsole.services.console_protocol import ConsoleMessage, ConsoleUpdate, ViewCommand, ViewUpdate
from pyqt_logconsole.services.log_store import LogStore
from pyqt_logconsole.services.session_tracker import SessionTracker
from pyqt_logconsole.theming import LogColorScheme
from pyqt_logconsole.widgets.log_console_view import LogConsoleView

logger = logging.getLogger(__name__)

_TIMESTAMP_LABELS = {"absolute": "Time: Abs", "relative": "Time: Rel", "hidden": "Time: Off"}


class LogConsoleWindow(QMainWindow):
    """Main console window."""

    window_closed = pyqtSignal()
    source_link_activated = pyqtSignal(str, int, int, str)  # (path, line, column, scheme)

    def __init__(self, store: Optional[LogStore] = None, color_scheme: Optional[LogColorScheme] = None,
                 parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.store = store or LogStore()
        self.color_scheme = color_scheme or LogColorScheme.create_dark_theme()
        self.tracker = SessionTracker(self.store)
        self.stream_reader: Optional[StreamReader] = None
        self._shown_once = False

        self.setup_ui()
        self.controller = ConsoleController(
            self.store,
            send=self.apply_update,
            measure_markup=self.console_view.measure_markup,
            has_selection=self.console_view.has_selection,
        )
        self.setup_connections()

    def setup_ui(self) -> None:
        self.setWindowTitle("Debug Console")
        self.setMinimumSize(600, 400)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QVBoxLayout(central_widget)

        toolbar = QHBoxLayout()

        # Level toggles
        self.level_buttons: Dict[LogLevel, QPushButton] = {}
        for level in LogLevel:
            button = QPushButton(level.value.upper())
            button.setCheckable(True)
            button.setToolTip(f"Show {level.value} messages")
            self.level_buttons[level] = button
            toolbar.addWidget(button)

        # Search
        self.search_input = QLineEdit()
        self.search_input.setPlaceholderText("Filter messages...")
        self.search_input.setClearButtonEnabled(True)
        toolbar.addWidget(self.search_input, 1)

        self.regex_cb = QCheckBox("Regex")
        toolbar.addWidget(self.regex_cb)

        self.logic_btn = QPushButton("&&&&")
        self.logic_btn.setToolTip("Combine level and text filters with AND / OR")
        self.logic_btn.setEnabled(False)
        toolbar.addWidget(self.logic_btn)

        # Display toggles
        self.timestamps_btn = QPushButton(_TIMESTAMP_LABELS["absolute"])
        self.compact_btn = QPushButton("Compact")
        self.compact_btn.setCheckable(True)
        self.tags_btn = QPushButton("Tags")
        self.tags_btn.setCheckable(True)
        self.tags_btn.setChecked(True)
        for button in (self.timestamps_btn, self.compact_btn, self.tags_btn):
            toolbar.addWidget(button)

        main_layout.addLayout(toolbar)

        self.console_view = LogConsoleView(self.color_scheme)
        main_layout.addWidget(self.console_view, 1)

        control_layout = QHBoxLayout()
        self.copy_all_btn = QPushButton("Copy All")
        self.clear_btn = QPushButton("Clear")
        self.load_btn = QPushButton("Load...")
        self.save_btn = QPushButton("Save...")
        for button in (self.copy_all_btn, self.clear_btn, self.load_btn, self.save_btn):
            control_layout.addWidget(button)
        control_layout.addStretch()
        self.status_label = QLabel("0 / 0")
        control_layout.addWidget(self.status_label)
        main_layout.addLayout(control_layout)

        # Window-local shortcuts
        search_action = QAction("Search", self)
        search_action.setShortcut("Ctrl+F")
        search_action.triggered.connect(self.search_input.setFocus)
        self.addAction(search_action)

        copy_all_action = QAction("Copy All", self)
        copy_all_action.setShortcut("Ctrl+Shift+C")
        copy_all_action.triggered.connect(lambda: self._issue(ViewCommand.COPY_ALL))
        self.addAction(copy_all_action)

        logger.debug("LogConsoleWindow UI setup complete")

    def setup_connections(self) -> None:
        self.console_view.command_issued.connect(self.controller.dispatch)
        self.console_view.source_link_activated.connect(self.source_link_activated)

        for level, button in self.level_buttons.items():
            button.clicked.connect(lambda _checked, lvl=level: self._issue(ViewCommand.TOGGLE_LEVEL, level=lvl.value))
        self.search_input.textChanged.connect(lambda text: self._issue(ViewCommand.SET_SEARCH, query=text))
        self.regex_cb.toggled.connect(lambda checked: self._issue(ViewCommand.TOGGLE_REGEX, enabled=checked))
        self.logic_btn.clicked.connect(lambda: self._issue(ViewCommand.TOGGLE_COMBINE_MODE))

        self.timestamps_btn.clicked.connect(lambda: self._issue(ViewCommand.TOGGLE_TIMESTAMPS))
        self.compact_btn.clicked.connect(lambda: self._issue(ViewCommand.TOGGLE_COMPACT))
        self.tags_btn.clicked.connect(lambda: self._issue(ViewCommand.TOGGLE_TAGS))

        self.copy_all_btn.clicked.connect(lambda: self._issue(ViewCommand.COPY_ALL))
        self.clear_btn.clicked.connect(lambda: self._issue(ViewCommand.CLEAR))
        self.load_btn.clicked.connect(self.load_from_file)
        self.save_btn.clicked.connect(self.save_to_file)

        logger.debug("LogConsoleWindow connections setup complete")

    # ------------------------------------------------------------------
    # Live input
    # ------------------------------------------------------------------

    def append_output(self, text: str, category: str = "stdout") -> bool:
        return self.tracker.handle_line(text, category)

    def attach_stream(self, stream: Optional[TextIO] = None, path: Optional[Path] = None,
                      category: str = "stdout", follow: bool = False) -> StreamReader:
        """Start a reader thread feeding lines into the current session."""
        self.stop_stream()
        self.stream_reader = StreamReader(stream=stream, path=path, category=category, follow=follow)
        self.stream_reader.line_received.connect(self._on_stream_line)
        self.stream_reader.error_occurred.connect(self._on_stream_error)
        self.stream_reader.start()
        return self.stream_reader

    def stop_stream(self) -> None:
        if self.stream_reader is not None:
            self.stream_reader.stop()
            self.stream_reader.wait(2000)
            self.stream_reader = None

    # ------------------------------------------------------------------
    # Updates from the controller
    # ------------------------------------------------------------------

    def apply_update(self, update: ConsoleUpdate) -> None:
        payload = update.payload
        if update.kind is ViewUpdate.FRAME:
            self.console_view.apply_frame(payload["frame"], payload["markup"])
            self._update_status(payload["filtered"], payload["total"])
        elif update.kind is ViewUpdate.SCROLL_TO:
            self.console_view.scroll_to_offset(payload["offset"])
        elif update.kind is ViewUpdate.FILTER_STATE:
            self._sync_filter_controls(payload)
        elif update.kind is ViewUpdate.DISPLAY_OPTIONS:
            self.timestamps_btn.setText(_TIMESTAMP_LABELS[payload["timestamp_mode"]])
            self.compact_btn.setChecked(payload["compact"])
            self.tags_btn.setChecked(payload["highlight_tags"])
        elif update.kind is ViewUpdate.CLIPBOARD:
            QApplication.clipboard().setText(payload["text"])
        elif update.kind is ViewUpdate.LOAD_FAILED:
            QMessageBox.warning(self, "Load Failed", payload["error"])

    def _sync_filter_controls(self, payload: dict) -> None:
        active = set(payload["levels"])
        for level, button in self.level_buttons.items():
            button.setChecked(level.value in active)
        if self.search_input.text() != payload["search"]:
            self.search_input.blockSignals(True)
            self.search_input.setText(payload["search"])
            self.search_input.blockSignals(False)
        self.regex_cb.blockSignals(True)
        self.regex_cb.setChecked(payload["regex"])
        self.regex_cb.blockSignals(False)
        self.search_input.setToolTip(f"Invalid regex, matching as text: {payload['regex_error']}"
                                     if payload["regex_error"] else "")
        self.logic_btn.setEnabled(payload["combine_enabled"])
        self.logic_btn.setText("&&&&" if payload["combine_mode"] == "AND" else "||")
        self._update_status(payload["filtered"], payload["total"])

    def _update_status(self, filtered: int, total: int) -> None:
        self.status_label.setText(f"{filtered} / {total}")

    # ------------------------------------------------------------------
    # File actions
    # ------------------------------------------------------------------

    def load_from_file(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Load Logs", "", "JSON files (*.json);;All files (*)")
        if path:
            self._issue(ViewCommand.LOAD, path=path)

    def save_to_file(self) -> None:
        path, _ = QFileDialog.getSaveFileName(self, "Save Logs", "logs.json", "JSON files (*.json)")
        if not path:
            return
        try:
            write_snapshot(path, self.store.records())
            logger.info(f"Saved {len(self.store)} records to {path}")
        except OSError as e:
            logger.error(f"Failed to save logs to {path}: {e}")
            QMessageBox.warning(self, "Save Failed", str(e))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _issue(self, command: ViewCommand, **payload) -> None:
        self.controller.dispatch(ConsoleMessage(command, payload))

    @pyqtSlot(str, str)
    def _on_stream_line(self, text: str, category: str) -> None:
        # Queued onto the GUI thread; the store is not thread-safe
        self.tracker.handle_line(text, category)

    def _on_stream_error(self, error_msg: str) -> None:
        logger.error(f"Stream reader error: {error_msg}")

    def showEvent(self, event) -> None:  # type: ignore[override]
        super().showEvent(event)
        if not self._shown_once:
            self._shown_once = True
            width, height = self.console_view.content_size()
            self._issue(ViewCommand.RESIZE, width=width, height=height)
            self._issue(ViewCommand.READY)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.stop_stream()
        self.controller.close()
        self.window_closed.emit()
        super().closeEvent(event)
