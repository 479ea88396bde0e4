# ui/player_bar.py
from __future__ import annotations

from PySide6.QtCore import Qt, QSize, QByteArray
from PySide6.QtGui import QIcon, QPixmap, QPainter
from PySide6.QtWidgets import QWidget, QHBoxLayout, QLabel, QToolButton, QSlider
from PySide6.QtSvg import QSvgRenderer

from core.models import PlaybackMode
from core.utils import fmt_seconds
from player.controller import ControllerState

# slider units per second
TICKS = 10
THUMB_W, THUMB_H = 40, 24


def _svg_icon(path_d: str, size: int = 20, color: str = "#e5e7eb") -> QIcon:
    svg = f"""
    <svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" viewBox="0 0 24 24">
      <path d="{path_d}" fill="{color}"/>
    </svg>
    """.strip()

    renderer = QSvgRenderer(QByteArray(svg.encode("utf-8")))
    pm = QPixmap(size, size)
    pm.fill(Qt.transparent)

    p = QPainter(pm)
    renderer.render(p)
    p.end()

    return QIcon(pm)


SVG_PREV = "M6 18V6h2v12H6zm3.5-6L18 6v12l-8.5-6z"
SVG_NEXT = "M16 6v12h2V6h-2zM6 18l8.5-6L6 6v12z"
SVG_PLAY = "M8 5v14l11-7L8 5z"
SVG_PAUSE = "M6 5h4v14H6V5zm8 0h4v14h-4V5z"
SVG_SHUFFLE = ("M10.6 9.2 5.4 4 4 5.4l5.2 5.2 1.4-1.4zM14.5 4l2 2L4 18.6 5.4 20 18 7.5l2 2V4h-5.5z"
               "m.3 9.4-1.4 1.4 3.1 3.1-2 2H20v-5.5l-2 2-3.2-3z")
SVG_REPEAT = "M7 7h10v3l4-4-4-4v3H5v6h2V7zm10 10H7v-3l-4 4 4 4v-3h12v-6h-2v4z"

ACCENT = "#38bdf8"


class PlayerBar(QWidget):
    def __init__(self, controller, parent=None):
        super().__init__(parent)
        self.controller = controller
        self._dragging = False
        self._thumbs: dict[str, QPixmap] = {}

        root = QHBoxLayout(self)
        root.setContentsMargins(8, 6, 8, 6)
        root.setSpacing(10)

        self.btn_random = self._tool_button("BtnRandom", SVG_SHUFFLE, 18, "Random")
        self.btn_random.setCheckable(True)
        self.btn_repeat = self._tool_button("BtnRepeat", SVG_REPEAT, 18, "Repeat")
        self.btn_repeat.setCheckable(True)

        self.btn_prev = self._tool_button("BtnPrev", SVG_PREV, 20, "Previous")
        self.btn_play = self._tool_button("BtnPlay", SVG_PLAY, 22, "Play")
        self.btn_next = self._tool_button("BtnNext", SVG_NEXT, 20, "Next")

        self.lbl_thumb = QLabel()
        self.lbl_thumb.setFixedSize(THUMB_W, THUMB_H)
        self.lbl_thumb.setObjectName("Thumb")
        self.lbl_thumb.setVisible(False)

        self.lbl_title = QLabel("Nothing playing")
        self.lbl_title.setMinimumWidth(220)
        self.lbl_title.setObjectName("NowPlaying")

        self.lbl_time = QLabel("0:00")
        self.lbl_dur = QLabel("0:00")

        self.slider = QSlider(Qt.Orientation.Horizontal)
        self.slider.setRange(0, 0)
        self.slider.setSingleStep(TICKS)
        self.slider.setPageStep(5 * TICKS)

        root.addWidget(self.btn_random)
        root.addWidget(self.btn_repeat)
        root.addSpacing(6)
        root.addWidget(self.btn_prev)
        root.addWidget(self.btn_play)
        root.addWidget(self.btn_next)
        root.addSpacing(6)
        root.addWidget(self.lbl_thumb)
        root.addWidget(self.lbl_title, 1)
        root.addWidget(self.lbl_time)
        root.addWidget(self.slider, 3)
        root.addWidget(self.lbl_dur)

        # --- user input -> controller ---
        self.slider.sliderPressed.connect(self._on_slider_pressed)
        self.slider.sliderMoved.connect(self._on_slider_moved)
        self.slider.sliderReleased.connect(self._on_slider_released)
        self.btn_play.clicked.connect(controller.toggle_play_pause)
        self.btn_prev.clicked.connect(controller.prev)
        self.btn_next.clicked.connect(controller.next)
        self.btn_random.clicked.connect(controller.toggle_random)
        self.btn_repeat.clicked.connect(controller.toggle_repeat)

        # --- controller -> display ---
        controller.trackChanged.connect(self._on_track_changed)
        controller.stateChanged.connect(self._on_state_changed)
        controller.positionChanged.connect(self._on_position)
        controller.modeChanged.connect(self._on_mode_changed)
        controller.viewChanged.connect(lambda _view: self._update_controls())

        self.setObjectName("PlayerBar")
        self._apply_styles()
        self._update_controls()

    def _tool_button(self, name: str, path_d: str, size: int, tip: str) -> QToolButton:
        btn = QToolButton()
        btn.setObjectName(name)
        btn.setIcon(_svg_icon(path_d, size))
        btn.setIconSize(QSize(size, size))
        btn.setToolTip(tip)
        return btn

    # --- slider handling ---
    def _on_slider_pressed(self):
        self._dragging = True

    def _on_slider_moved(self, value: int):
        self.lbl_time.setText(fmt_seconds(value / TICKS))
        self.controller.seek_drag(value / TICKS)

    def _on_slider_released(self):
        self._dragging = False
        self.controller.seek_commit()

    # --- controller updates ---
    def _on_track_changed(self, track):
        if track is None:
            self.lbl_title.setText("Nothing to play")
            self.lbl_thumb.clear()
            self.lbl_thumb.setVisible(False)
            self.slider.setRange(0, 0)
            self.lbl_time.setText("0:00")
            self.lbl_dur.setText("0:00")
        else:
            artist = track.artist or "Unknown Artist"
            self.lbl_title.setText(f"{artist} — {track.title}")
            self.slider.setRange(0, int(round(track.duration * TICKS)))
            self.lbl_dur.setText(fmt_seconds(track.duration))
            self._show_thumb(track.media_ref)
        self._update_controls()

    def set_thumbnail(self, media_ref: str, data: bytes):
        pm = QPixmap()
        if not pm.loadFromData(data):
            return
        self._thumbs[media_ref] = pm.scaled(
            THUMB_W, THUMB_H, Qt.KeepAspectRatioByExpanding, Qt.SmoothTransformation
        )
        track = self.controller.current_track
        if track is not None and track.media_ref == media_ref:
            self._show_thumb(media_ref)

    def _show_thumb(self, media_ref: str):
        pm = self._thumbs.get(media_ref)
        if pm is None:
            self.lbl_thumb.clear()
        else:
            self.lbl_thumb.setPixmap(pm)
        self.lbl_thumb.setVisible(pm is not None)

    def _on_state_changed(self, state):
        playing = state is ControllerState.PLAYING
        self.btn_play.setIcon(_svg_icon(SVG_PAUSE if playing else SVG_PLAY, 22))
        self.btn_play.setToolTip("Pause" if playing else "Play")
        self._update_controls()

    def _on_mode_changed(self, mode):
        random_on = mode is PlaybackMode.RANDOM
        repeat_on = mode is PlaybackMode.REPEAT
        self.btn_random.setChecked(random_on)
        self.btn_repeat.setChecked(repeat_on)
        self.btn_random.setIcon(_svg_icon(SVG_SHUFFLE, 18, ACCENT if random_on else "#e5e7eb"))
        self.btn_repeat.setIcon(_svg_icon(SVG_REPEAT, 18, ACCENT if repeat_on else "#e5e7eb"))
        self._update_controls()

    def _on_position(self, seconds: float):
        if self._dragging and self.controller.seeking:
            return
        self.lbl_time.setText(fmt_seconds(seconds))
        self.slider.setValue(int(round(seconds * TICKS)))

    def _update_controls(self):
        c = self.controller
        has_track = c.current_track is not None
        usable = has_track and c.state is not ControllerState.ERROR
        self.btn_play.setEnabled(usable)
        self.slider.setEnabled(usable)
        self.btn_prev.setEnabled(usable and c.can_prev())
        self.btn_next.setEnabled(usable and c.can_next())

    def _apply_styles(self):
        self.setStyleSheet("""
        QWidget#PlayerBar {
            background-color: #020617;
            border-top: 1px solid #111827;
        }
        QToolButton {
            border: 1px solid transparent;
            background: transparent;
            padding: 6px;
            border-radius: 10px;
        }
        QToolButton:hover {
            background: #0b1222;
            border-color: #1f2937;
        }
        QToolButton:checked {
            background: rgba(56, 189, 248, 0.15);
        }
        QToolButton:disabled {
            background: transparent;
        }
        QToolButton#BtnPlay {
            background: #111827;
            border: 1px solid #1f2937;
            border-radius: 999px;
            padding: 8px;
        }
        QToolButton#BtnPlay:hover {
            border-color: #38bdf8;
            background: #020617;
        }
        QSlider::groove:horizontal {
            height: 4px;
            background: #0f172a;
            border-radius: 2px;
        }
        QSlider::handle:horizontal {
            width: 12px;
            height: 12px;
            margin: -4px 0;
            border-radius: 6px;
            background: #38bdf8;
        }
        QSlider::sub-page:horizontal {
            background: #38bdf8;
            border-radius: 2px;
        }
        QLabel {
            color: #9ca3af;
            font-size: 11px;
        }
        QLabel#NowPlaying {
            color: #e5e7eb;
            font-size: 12px;
        }
        """)
