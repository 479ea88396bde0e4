from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QLabel, QPushButton,
    QRadioButton, QButtonGroup, QGroupBox, QScrollArea, QWidget
)

from core.view import FilterState, category_choices, vocalist_choices

ALL = "All"


class FilterDialog(QDialog):
    """
    Edits the pending filter. Nothing is applied until "Apply" is pressed,
    and "Apply" stays disabled while the draft would match no track.
    """

    def __init__(self, filter_state: FilterState, catalog, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Filter")
        self.resize(360, 480)
        self.filter_state = filter_state
        self.catalog = list(catalog)

        self.filter_state.begin_edit()

        layout = QVBoxLayout(self)

        self.category_group = QButtonGroup(self)
        layout.addWidget(self._radio_box(
            "Category", self.category_group,
            category_choices(self.catalog), self.filter_state.pending.category,
        ))

        self.vocalist_group = QButtonGroup(self)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(self._radio_box(
            "Vocalist", self.vocalist_group,
            vocalist_choices(self.catalog), self.filter_state.pending.vocalist,
        ))
        layout.addWidget(scroll, 1)

        self.lbl_preview = QLabel()
        layout.addWidget(self.lbl_preview)

        self.apply_btn = QPushButton("Apply")
        layout.addWidget(self.apply_btn)

        self.category_group.buttonClicked.connect(self._on_category)
        self.vocalist_group.buttonClicked.connect(self._on_vocalist)
        self.apply_btn.clicked.connect(self.apply)

        self._refresh_preview()

    def _radio_box(self, title: str, group: QButtonGroup, choices: list[str], current) -> QWidget:
        box = QGroupBox(title)
        box_layout = QVBoxLayout(box)
        for value in [None] + list(choices):
            btn = QRadioButton(value or ALL)
            btn.setProperty("filterValue", value or "")
            btn.setChecked((current or None) == value)
            group.addButton(btn)
            box_layout.addWidget(btn)
        box_layout.addStretch(1)
        return box

    def _on_category(self, btn):
        self.filter_state.set_pending_category(btn.property("filterValue") or None)
        self._refresh_preview()

    def _on_vocalist(self, btn):
        self.filter_state.set_pending_vocalist(btn.property("filterValue") or None)
        self._refresh_preview()

    def preview_count(self) -> int:
        return self.filter_state.preview_count(self.catalog)

    def _refresh_preview(self):
        count = self.preview_count()
        self.lbl_preview.setText(f"{count} track(s) match" if count else "No tracks match")
        self.apply_btn.setEnabled(count > 0)

    def apply(self):
        if not self.filter_state.can_confirm(self.catalog):
            return
        self.filter_state.commit()
        self.accept()
