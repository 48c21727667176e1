"""
Virtualized console view.

A QAbstractScrollArea whose scroll range covers every filtered record while
only the records in the current RenderFrame exist as widgets: one selectable
rich-text QLabel per record, positioned at its content-space top minus the
scroll offset. Labels are pooled and reused across frames; a label whose
record and markup did not change keeps its text (and with it any selection).

The view does no filtering or layout math. It forwards user input as
ConsoleMessage commands (command_issued) and applies FRAME / SCROLL_TO
updates handed to it by its owner.
"""

import logging
import math
from typing import List, Optional

from PyQt6.QtCore import QPoint, QUrl, Qt, pyqtSignal
from PyQt6.QtGui import QDesktopServices, QFont, QTextDocument, QTextOption
from PyQt6.QtWidgets import QAbstractScrollArea, QApplication, QLabel, QMenu, QWidget

from pyqt_logconsole.protocols import get_console_config
from pyqt_logconsole.rendering.message_formatter import SourceLink
from pyqt_logconsole.services.console_protocol import ConsoleMessage, ViewCommand
from pyqt_logconsole.theming import LogColorScheme
from pyqt_logconsole.viewport import RenderFrame

logger = logging.getLogger(__name__)

# Vertical padding inside each row, included in measured heights
ROW_PADDING = 1


class LogConsoleView(QAbstractScrollArea):
    """Scroll area that materializes only the visible records."""

    # Signals
    command_issued = pyqtSignal(object)                    # ConsoleMessage
    source_link_activated = pyqtSignal(str, int, int, str)  # (path, line, column, scheme)

    def __init__(self, color_scheme: Optional[LogColorScheme] = None, parent: Optional[QWidget] = None):
        super().__init__(parent)
        config = get_console_config()
        self.color_scheme = color_scheme or LogColorScheme.create_dark_theme()
        self._labels: List[QLabel] = []
        self._frame: Optional[RenderFrame] = None
        self._applying_frame = False

        font = QFont(config.font_family, config.font_point_size)
        font.setStyleHint(QFont.StyleHint.Monospace)
        self.setFont(font)

        # Off-screen document used for height measurement
        self._measure_doc = QTextDocument()
        self._measure_doc.setDefaultFont(font)
        self._measure_doc.setDocumentMargin(ROW_PADDING)
        option = QTextOption()
        option.setWrapMode(QTextOption.WrapMode.WrapAtWordBoundaryOrAnywhere)
        self._measure_doc.setDefaultTextOption(option)

        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOn)
        self.verticalScrollBar().setSingleStep(config.default_item_height)
        self.verticalScrollBar().valueChanged.connect(self._on_scroll_value_changed)
        self.viewport().setAutoFillBackground(True)
        self.viewport().setStyleSheet(
            f"background-color: {self.color_scheme.to_hex(self.color_scheme.background_color)};"
        )

    # ------------------------------------------------------------------
    # Host API
    # ------------------------------------------------------------------

    def measure_markup(self, markup: str, width: int) -> int:
        """Height in pixels of markup laid out at width."""
        self._measure_doc.setTextWidth(max(1, width))
        self._measure_doc.setHtml(markup)
        return int(math.ceil(self._measure_doc.size().height()))

    def has_selection(self) -> bool:
        return any(label.isVisible() and label.hasSelectedText() for label in self._labels)

    def selected_text(self) -> str:
        return "\n".join(label.selectedText() for label in self._labels
                         if label.isVisible() and label.hasSelectedText())

    def content_size(self) -> tuple:
        viewport = self.viewport()
        return viewport.width(), viewport.height()

    def apply_frame(self, frame: RenderFrame, markup: List[str]) -> None:
        """Materialize a frame: position pooled labels and sync the scroll bar."""
        self._frame = frame
        width, height = self.content_size()

        self._applying_frame = True
        try:
            bar = self.verticalScrollBar()
            bar.setRange(0, max(0, frame.total_extent - height))
            bar.setPageStep(max(1, height))
            bar.setValue(frame.scroll_offset)
        finally:
            self._applying_frame = False

        while len(self._labels) < len(frame.records):
            self._labels.append(self._create_label())

        for slot, label in enumerate(self._labels):
            if slot >= len(frame.records):
                label.hide()
                continue
            record = frame.records[slot]
            if label.property("record_id") != record.id or label.property("markup") != markup[slot]:
                label.setText(markup[slot])
                label.setProperty("record_id", record.id)
                label.setProperty("markup", markup[slot])
            label.setProperty("filtered_index", frame.start + slot)
            label.setGeometry(0, frame.positions[slot] - frame.scroll_offset, width, frame.heights[slot])
            label.show()

    def scroll_to_offset(self, offset: int) -> None:
        self._applying_frame = True
        try:
            self.verticalScrollBar().setValue(offset)
        finally:
            self._applying_frame = False

    def issue(self, command: ViewCommand, **payload) -> None:
        self.command_issued.emit(ConsoleMessage(command, payload))

    # ------------------------------------------------------------------
    # Qt overrides
    # ------------------------------------------------------------------

    def resizeEvent(self, event) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        width, height = self.content_size()
        self.issue(ViewCommand.RESIZE, width=width, height=height)

    def scrollContentsBy(self, dx: int, dy: int) -> None:  # type: ignore[override]
        # Labels are repositioned by the next frame
        pass

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _create_label(self) -> QLabel:
        label = QLabel(self.viewport())
        label.setTextFormat(Qt.TextFormat.RichText)
        label.setWordWrap(True)
        label.setMargin(ROW_PADDING)
        label.setAlignment(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop)
        label.setTextInteractionFlags(
            Qt.TextInteractionFlag.TextSelectableByMouse | Qt.TextInteractionFlag.LinksAccessibleByMouse
        )
        label.setOpenExternalLinks(False)
        label.linkActivated.connect(self._on_link_activated)
        label.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        label.customContextMenuRequested.connect(
            lambda pos, source=label: self._show_record_menu(source, pos)
        )
        return label

    def _on_scroll_value_changed(self, value: int) -> None:
        if self._applying_frame:
            return
        self.issue(ViewCommand.SCROLL, offset=value)

    def _on_link_activated(self, href: str) -> None:
        link = SourceLink.from_href(href)
        if link is not None:
            logger.debug(f"Source link activated: {link.path}:{link.line}")
            self.source_link_activated.emit(link.path, link.line, link.column, link.scheme)
            return
        QDesktopServices.openUrl(QUrl(href))

    def _show_record_menu(self, label: QLabel, pos: QPoint) -> None:
        record_id = label.property("record_id")
        index = label.property("filtered_index")
        menu = QMenu(self)

        copy_selection = menu.addAction("Copy")
        copy_selection.setEnabled(label.hasSelectedText())
        copy_selection.triggered.connect(lambda: QApplication.clipboard().setText(label.selectedText()))

        copy_line = menu.addAction("Copy Line")
        copy_line.triggered.connect(lambda: self.issue(ViewCommand.COPY_RANGE, start=index, end=index))

        copy_all = menu.addAction("Copy All")
        copy_all.triggered.connect(lambda: self.issue(ViewCommand.COPY_ALL))

        menu.addSeparator()
        show_unfiltered = menu.addAction("Show Without Filters")
        show_unfiltered.triggered.connect(lambda: self.issue(ViewCommand.SHOW_UNFILTERED, record_id=record_id))

        menu.exec(label.mapToGlobal(pos))
