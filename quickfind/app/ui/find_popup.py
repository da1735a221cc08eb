"""Find-in-project popup: a thin shell around the search scheduler."""

from __future__ import annotations

import html
import logging
import re
from pathlib import Path
from typing import Optional

from PySide6.QtCore import Qt, QSize, Signal
from PySide6.QtGui import QPainter, QTextDocument
from PySide6.QtWidgets import (
    QApplication,
    QCheckBox,
    QComboBox,
    QDialog,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QPlainTextEdit,
    QSplitter,
    QStyle,
    QStyledItemDelegate,
    QVBoxLayout,
)

from quickfind.app import config
from quickfind.core.executor import SearchBackend
from quickfind.core.models import MatchEvent, ScopeOptions, SearchConfig, SearchContext
from quickfind.core.scheduler import SearchScheduler
from .path_utils import presentable_path

logger = logging.getLogger(__name__)

PATH_DISPLAY_CHARS = 60
PREVIEW_CONTEXT_LINES = 5


class ResultRowDelegate(QStyledItemDelegate):
    """Draws a result row: highlighted snippet followed by its grey location."""

    ROW_MARGIN = 2
    FALLBACK_WIDTH = 400

    def _row_document(self, option, index, selected: bool = False) -> QTextDocument:
        doc = QTextDocument()
        doc.setDefaultFont(option.font)
        doc.setDocumentMargin(self.ROW_MARGIN)
        if selected:
            color = option.palette.highlightedText().color().name()
            doc.setDefaultStyleSheet(f"body {{ color: {color}; }}")
        doc.setHtml(index.data(Qt.DisplayRole) or "")
        width = option.rect.width()
        doc.setTextWidth(width if width > 0 else self.FALLBACK_WIDTH)
        return doc

    def paint(self, painter: QPainter, option, index):
        selected = bool(option.state & QStyle.StateFlag.State_Selected)
        doc = self._row_document(option, index, selected)
        painter.save()
        if selected:
            painter.fillRect(option.rect, option.palette.highlight())
        painter.translate(option.rect.topLeft())
        doc.drawContents(painter)
        painter.restore()

    def sizeHint(self, option, index):
        size = self._row_document(option, index).size()
        return QSize(int(size.width()), int(size.height()))


class FindPopup(QDialog):
    """Modeless popup that searches as the user types.

    Implements the UI shell operations driven by the scheduler's result sink.
    """

    # Emitted when the user opens a result (double click / Enter)
    resultActivated = Signal(str, int)  # path, line

    def __init__(
        self,
        backend: SearchBackend,
        project_root: Optional[str | Path] = None,
        search_config: Optional[SearchConfig] = None,
        parent=None,
        initial_query: str = "",
        scope: Optional[ScopeOptions] = None,
        persist_settings: bool = True,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Find in Project")
        self.setModal(False)
        self.resize(760, 480)
        self._project_root = Path(project_root) if project_root else None
        self._persist_settings = persist_settings
        if scope is None:
            scope = config.load_scope_options() if persist_settings else ScopeOptions()

        self._init_ui(scope)

        self.scheduler = SearchScheduler(
            backend,
            shell=self,
            request_factory=self.current_request,
            config=search_config,
            parent=self,
        )
        self.scheduler.searchStarted.connect(self._on_search_started)
        self.scheduler.searchFinished.connect(self._on_search_finished)
        self.scheduler.countersChanged.connect(self._on_counters_changed)

        # Option widgets only start triggering searches once the scheduler exists
        self.search.textChanged.connect(self._on_query_changed)
        self.case_box.toggled.connect(self._on_query_changed)
        self.words_box.toggled.connect(self._on_query_changed)
        self.regex_box.toggled.connect(self._on_query_changed)
        self.context_combo.currentIndexChanged.connect(self._on_query_changed)
        self.mask_edit.textChanged.connect(self._on_query_changed)

        if initial_query:
            self.search.setText(initial_query)
            self.search.selectAll()
        self.search.setFocus()

    def _init_ui(self, scope: ScopeOptions) -> None:
        layout = QVBoxLayout()
        layout.setContentsMargins(8, 8, 8, 8)
        layout.setSpacing(6)

        self.search = QLineEdit()
        self.search.setPlaceholderText("Text to find…")
        self.search.returnPressed.connect(self._activate_current)
        layout.addWidget(self.search)

        options_row = QHBoxLayout()
        options_row.setSpacing(8)
        self.case_box = QCheckBox("Match case")
        self.case_box.setChecked(scope.case_sensitive)
        options_row.addWidget(self.case_box)
        self.words_box = QCheckBox("Words")
        self.words_box.setChecked(scope.whole_words)
        options_row.addWidget(self.words_box)
        self.regex_box = QCheckBox("Regex")
        self.regex_box.setChecked(scope.regex)
        options_row.addWidget(self.regex_box)

        self.context_combo = QComboBox()
        for context in SearchContext:
            self.context_combo.addItem(context.value, context)
        self.context_combo.setCurrentIndex(list(SearchContext).index(scope.search_context))
        options_row.addWidget(self.context_combo)

        self.mask_edit = QLineEdit()
        self.mask_edit.setPlaceholderText("File mask, e.g. *.py,*.md")
        self.mask_edit.setText(scope.file_mask or "")
        options_row.addWidget(self.mask_edit, 1)
        layout.addLayout(options_row)

        self.status_label = QLabel("")
        self.status_label.setStyleSheet("color: gray; font-style: italic;")
        layout.addWidget(self.status_label)

        self.empty_label = QLabel("")
        self.empty_label.setAlignment(Qt.AlignCenter)
        self.empty_label.setStyleSheet("color: gray;")
        self.empty_label.hide()
        layout.addWidget(self.empty_label)

        self.results_area = QSplitter(Qt.Vertical)
        self.list_widget = QListWidget()
        self.list_widget.setItemDelegate(ResultRowDelegate(self.list_widget))
        self.list_widget.itemDoubleClicked.connect(lambda _item: self._activate_current())
        self.list_widget.currentItemChanged.connect(self._update_preview)
        self.results_area.addWidget(self.list_widget)

        self.preview = QPlainTextEdit()
        self.preview.setReadOnly(True)
        self.preview.hide()
        self.results_area.addWidget(self.preview)
        self.results_area.hide()
        layout.addWidget(self.results_area, 1)

        self.setLayout(layout)

    # --- request building -------------------------------------------------

    def current_scope(self) -> ScopeOptions:
        context = self.context_combo.currentData()
        mask = self.mask_edit.text().strip()
        return ScopeOptions(
            case_sensitive=self.case_box.isChecked(),
            whole_words=self.words_box.isChecked(),
            regex=self.regex_box.isChecked(),
            file_mask=mask or None,
            search_context=context if isinstance(context, SearchContext) else SearchContext.ANY,
        )

    def current_request(self) -> tuple[str, ScopeOptions]:
        return self.search.text(), self.current_scope()

    def _on_query_changed(self, *_args) -> None:
        if not self.isVisible():
            return
        self.scheduler.schedule_search()

    # --- UI shell operations ------------------------------------------------

    def reveal_results_area(self) -> None:
        self.empty_label.hide()
        self.results_area.show()

    def append_result_row(self, event: MatchEvent) -> None:
        item = QListWidgetItem(self._row_label(event))
        item.setData(Qt.UserRole, event.file_identifier)
        item.setData(Qt.UserRole + 1, event.line)
        self.list_widget.addItem(item)
        if self.list_widget.count() == 1:
            self.list_widget.setCurrentRow(0)

    def set_empty_text(self, message: str) -> None:
        self.empty_label.setText(message)
        self.empty_label.setVisible(bool(message))

    def set_preview_visible(self, visible: bool) -> None:
        self.preview.setVisible(visible)
        if not visible:
            self.preview.clear()

    def clear_results(self) -> None:
        self.list_widget.clear()
        self.preview.clear()

    # --- rendering ----------------------------------------------------------

    def _row_label(self, event: MatchEvent) -> str:
        location = presentable_path(event.file_identifier, self._project_root, PATH_DISPLAY_CHARS)
        if event.line:
            location = f"{location}:{event.line}"
        snippet = self._highlight_search_term(event.text.strip())
        return f"{snippet} <span style='color: gray;'>{html.escape(location)}</span>"

    def _highlight_search_term(self, text: str) -> str:
        """Highlight the literal query inside ``text`` using HTML."""
        escaped_text = html.escape(text)
        term = self.search.text().strip()
        if not term or self.regex_box.isChecked() or "\n" in term:
            return escaped_text
        flags = 0 if self.case_box.isChecked() else re.IGNORECASE
        pattern = re.compile(f"({re.escape(html.escape(term))})", flags)
        return pattern.sub(r"<b>\1</b>", escaped_text)

    def _update_preview(self, current: Optional[QListWidgetItem], _previous=None) -> None:
        if current is None or self.preview.isHidden():
            return
        path = Path(current.data(Qt.UserRole) or "")
        line = int(current.data(Qt.UserRole + 1) or 0)
        if not path.is_file():
            self.preview.setPlainText(current.text())
            return
        try:
            lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
        except OSError as exc:
            logger.debug("Preview failed for %s: %s", path, exc)
            self.preview.setPlainText("")
            return
        start = max(0, line - 1 - PREVIEW_CONTEXT_LINES)
        end = min(len(lines), line + PREVIEW_CONTEXT_LINES)
        self.preview.setPlainText("\n".join(lines[start:end]))

    # --- scheduler feedback -------------------------------------------------

    def _on_search_started(self, _generation_id: int) -> None:
        self.status_label.setText("Searching…")

    def _on_counters_changed(self, total: int, files: int) -> None:
        self.status_label.setText(self._counts_text(total, files))

    def _on_search_finished(self, _generation_id: int, outcome: str) -> None:
        counters = self.scheduler.counters
        text = self._counts_text(counters.total_matches, counters.distinct_files)
        if outcome == "capped":
            text += " (first page)"
        self.status_label.setText(text if counters.total_matches else "")

    @staticmethod
    def _counts_text(total: int, files: int) -> str:
        match_word = "match" if total == 1 else "matches"
        file_word = "file" if files == 1 else "files"
        return f"{total} {match_word} in {files} {file_word}"

    # --- dialog plumbing ----------------------------------------------------

    def selected_result(self) -> Optional[tuple[str, int]]:
        item = self.list_widget.currentItem()
        if item is None:
            return None
        return item.data(Qt.UserRole), int(item.data(Qt.UserRole + 1) or 0)

    def keyPressEvent(self, event):  # type: ignore[override]
        # Arrow keys move through results while the query keeps focus
        if event.key() in (Qt.Key_Up, Qt.Key_Down):
            previous_focus = self.focusWidget()
            QApplication.sendEvent(self.list_widget, event)
            if previous_focus is not None and previous_focus is not self.list_widget:
                previous_focus.setFocus()
            return
        super().keyPressEvent(event)

    def _activate_current(self) -> bool:
        selected = self.selected_result()
        if not selected:
            return False
        self.resultActivated.emit(*selected)
        return True

    def showEvent(self, event) -> None:  # type: ignore[override]
        super().showEvent(event)
        if self.search.text():
            self.scheduler.schedule_search()

    def done(self, result: int) -> None:  # type: ignore[override]
        self._teardown()
        super().done(result)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._teardown()
        super().closeEvent(event)

    def _teardown(self) -> None:
        if self.scheduler.disposed:
            return
        self.scheduler.dispose()
        if self._persist_settings:
            try:
                config.save_last_query(self.search.text())
                config.save_scope_options(self.current_scope())
            except OSError as exc:
                logger.warning("Failed to save find settings: %s", exc)
