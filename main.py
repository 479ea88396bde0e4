import logging
import sys
from pathlib import Path

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QApplication

ROOT = Path(__file__).resolve().parent
SRC_DIR = ROOT / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from core.config import AppConfig
from core.state import AppState
from player.mpv_ipc import MpvBackendConfig
from player.player import MpvPlayerAdapter
from ui.main_window import MainWindow


def configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def init_app_state() -> AppState:
    config = AppConfig.from_env()
    configure_logging(config)
    return AppState(config)


def adapter_factory(config: AppConfig):
    def make_adapter(wid: int) -> MpvPlayerAdapter:
        backend_config = MpvBackendConfig(
            mpv_path=config.mpv_path,
            wid=wid,
            ytdl_format=config.ytdl_format,
        )
        return MpvPlayerAdapter(
            backend_config,
            max_restart_attempts=config.max_restart_attempts,
            restart_backoff_ms=config.restart_backoff_ms,
        )
    return make_adapter


def main() -> int:
    qt_app = QApplication(sys.argv)

    app_state = init_app_state()
    main_window = MainWindow(app_state, adapter_factory(app_state.config))
    main_window.show()

    # Both arrive asynchronously; the controller binds once it has tracks and a ready player.
    QTimer.singleShot(0, main_window.adapter.start)
    QTimer.singleShot(0, main_window.load_catalog)

    return qt_app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
