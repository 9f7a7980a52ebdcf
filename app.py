# app.py
import logging
import sys

from PySide6 import QtWidgets

from config import ViewerConfig
from core.session import ViewerSession
from ui.main_window import MainWindow
from ui.scheduler import QtFrameScheduler


def build_session(cfg: ViewerConfig, scheduler) -> ViewerSession:
    return ViewerSession(
        scheduler,
        limits=cfg.zoom_limits(),
        px_per_second=cfg.px_per_second,
        y_scale=cfg.y_scale,
        layout=cfg.decode_layout,
        backend=cfg.decode_backend,
        default_opacity=cfg.default_track_opacity,
    )


def main(
    project_path=None,
    *,
    recording_path: str | None = None,
    config_path: str | None = None,
):
    cfg = ViewerConfig.load(config_path)
    app = QtWidgets.QApplication(sys.argv)

    scheduler = QtFrameScheduler(cfg.playback_interval_ms)
    session = build_session(cfg, scheduler)
    w = MainWindow(session, config=cfg)
    w.resize(1200, 700)
    w.show()

    if project_path:
        paths = [project_path]
        if recording_path:
            paths.append(recording_path)
        w.open_project(paths)
    elif recording_path:
        logging.getLogger(__name__).warning(
            "--recording %s ignored: a recording is only opened for a project", recording_path
        )

    return app.exec()


if __name__ == "__main__":
    import argparse
    p = argparse.ArgumentParser(description="Browse an EDF recording with project annotations.")
    p.add_argument("project_path", nargs="?", help="*.veembproj.json project document")
    p.add_argument("--recording", help="EDF file named by the project")
    p.add_argument("--config", help="config.ini path (default: ./config.ini)")
    p.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING or ERROR")
    args = p.parse_args()
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(
        main(
            args.project_path,
            recording_path=args.recording,
            config_path=args.config,
        )
    )
