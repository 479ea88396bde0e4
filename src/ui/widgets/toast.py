from __future__ import annotations

from PySide6.QtCore import Qt, QTimer, QEasingCurve, QPoint, QPropertyAnimation
from PySide6.QtWidgets import (
    QWidget,
    QFrame,
    QLabel,
    QHBoxLayout,
    QToolButton,
    QGraphicsOpacityEffect,
)

# kind -> (background, border)
_COLORS = {
    "success": ("#052e1a", "#16a34a"),
    "warning": ("#2a1a05", "#f59e0b"),
    "error": ("#2a0a0a", "#ef4444"),
    "info": ("#0b1222", "#38bdf8"),
}


class ToastWidget(QFrame):
    def __init__(self, message: str, kind: str, manager: "ToastManager"):
        super().__init__(manager)
        self.manager = manager
        bg, border = _COLORS.get(kind, _COLORS["info"])

        self.setObjectName("Toast")
        self.setAttribute(Qt.WidgetAttribute.WA_StyledBackground, True)
        self.setStyleSheet(f"""
        QFrame#Toast {{
            background: {bg};
            border: 1px solid {border};
            border-radius: 14px;
        }}
        QLabel {{ color: #e5e7eb; font-size: 12px; }}
        QToolButton {{ border: none; background: transparent; color: #e5e7eb; padding: 2px 6px; }}
        """)

        root = QHBoxLayout(self)
        root.setContentsMargins(12, 10, 10, 10)

        self.lbl = QLabel(message)
        self.lbl.setWordWrap(True)
        self.btn_close = QToolButton()
        self.btn_close.setText("✕")
        self.btn_close.clicked.connect(lambda: self.manager.dismiss(self))

        root.addWidget(self.lbl, 1)
        root.addWidget(self.btn_close, 0, Qt.AlignmentFlag.AlignTop)

        self._opacity = QGraphicsOpacityEffect(self)
        self._opacity.setOpacity(1.0)
        self.setGraphicsEffect(self._opacity)
        self._fade = None

    def fade_out(self, on_done):
        self._fade = QPropertyAnimation(self._opacity, b"opacity", self)
        self._fade.setDuration(180)
        self._fade.setStartValue(self._opacity.opacity())
        self._fade.setEndValue(0.0)
        self._fade.setEasingCurve(QEasingCurve.Type.InCubic)
        self._fade.finished.connect(on_done)
        self._fade.start()


class ToastManager(QWidget):
    """
    Transparent overlay on the host window stacking toasts top-right,
    newest first. Errors stay up longer than the rest.
    """

    def __init__(self, host: QWidget, max_visible: int = 4):
        super().__init__(host)
        self.host = host
        self.max_visible = max_visible
        self._toasts: list[ToastWidget] = []
        self._margin = 14
        self._spacing = 10
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, False)
        self.setAttribute(Qt.WidgetAttribute.WA_NoSystemBackground, True)
        self.resize(0, 0)
        self.show()

    def show_toast(self, message: str, notify_type: str = "info", timeout_ms: int = 3000):
        kind = (notify_type or "info").lower()
        if kind == "warn":
            kind = "warning"
        if kind == "error":
            timeout_ms = max(timeout_ms, 6000)

        toast = ToastWidget(message, kind, self)
        toast.setFixedWidth(min(420, max(260, self.host.width() // 2)))
        self._toasts.insert(0, toast)

        while len(self._toasts) > self.max_visible:
            old = self._toasts.pop()
            old.hide()
            old.deleteLater()

        toast.show()
        self._layout()
        QTimer.singleShot(max(500, int(timeout_ms)), lambda: self.dismiss(toast))

    def dismiss(self, toast: ToastWidget):
        if toast not in self._toasts:
            return
        self._toasts.remove(toast)

        def remove():
            toast.hide()
            toast.deleteLater()

        toast.fade_out(remove)
        self._layout()

    def _layout(self):
        width = max((t.width() for t in self._toasts), default=0)
        y = 0
        for t in self._toasts:
            t.adjustSize()
            t.move(QPoint(0, y))
            y += t.sizeHint().height() + self._spacing

        self.resize(width, max(0, y - self._spacing))
        self.move(self.host.width() - width - self._margin, self._margin)
        self.raise_()
