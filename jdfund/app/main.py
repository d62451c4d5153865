import sys
from pathlib import Path

from PySide6.QtCore import Qt, QThread
from PySide6.QtGui import QIcon
from PySide6.QtWidgets import QApplication, QStyle, QSystemTrayIcon

from jdfund.app.config import load_app_config
from jdfund.core.logger import INFO_EVENT_LEVEL, get_logger, install_excepthook, record, set_level
from jdfund.core.settings_store import SettingsStore
from jdfund.core.version import VERSION
from jdfund.gui.ticker_window import TickerWindow
from jdfund.gui.tray import TrayManager
from jdfund.services.broadcaster import EventBroadcaster
from jdfund.services.feed_supervisor import ConnectionSupervisor
from jdfund.services.gateway import CommandGateway
from jdfund.services.insecure_fetcher import InsecureHttpFetcher

ICON_PATH = Path(__file__).resolve().parents[1] / "gui" / "icon.png"


def main() -> int:
    logger = get_logger()
    install_excepthook()
    config = load_app_config()
    set_level(config.log_level)
    logger.log(INFO_EVENT_LEVEL, "app start version=%s home=%s", VERSION, config.home)

    app = QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(False)

    broadcaster = EventBroadcaster()
    store = SettingsStore(config.settings_path, publisher=broadcaster)
    store.load()
    fetcher = InsecureHttpFetcher(timeout_s=config.http_timeout_s)
    gateway = CommandGateway(store, fetcher, on_quit=app.exit)

    window = TickerWindow(
        gateway,
        broadcaster,
        secondary_sources=config.secondary_sources,
        poll_interval_ms=config.poll_interval_ms,
    )
    window.position_bottom_right()
    window.show()

    tray = None
    if QSystemTrayIcon.isSystemTrayAvailable():
        icon = QIcon(str(ICON_PATH)) if ICON_PATH.exists() else QIcon()
        if icon.isNull():
            icon = app.style().standardIcon(QStyle.StandardPixmap.SP_ComputerIcon)
        tray = TrayManager(icon, window, gateway, broadcaster)
        tray.show()
        logger.info("setup: tray created")
    else:
        logger.warning("setup: system tray unavailable")

    feed_thread = QThread(app)
    supervisor = ConnectionSupervisor(
        config.feed_url,
        config.subscribe_message(),
        broadcaster,
        reconnect_delay_s=config.reconnect_delay_s,
    )
    supervisor.moveToThread(feed_thread)
    feed_thread.started.connect(supervisor.run)
    # direct: the main thread may be blocked in wait() when finished fires
    supervisor.finished.connect(feed_thread.quit, Qt.ConnectionType.DirectConnection)
    feed_thread.start()

    def _shutdown() -> None:
        supervisor.stop()
        feed_thread.quit()
        feed_thread.wait()
        record("setup: feed thread joined", INFO_EVENT_LEVEL)
        fetcher.close()

    app.aboutToQuit.connect(_shutdown)
    logger.log(INFO_EVENT_LEVEL, "setup: done")
    exit_code = app.exec()
    logger.log(INFO_EVENT_LEVEL, "app exit code=%s", exit_code)
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
