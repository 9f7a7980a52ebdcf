from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from core.viewport import DEFAULT_PX_PER_SECOND, ZoomLimits


@dataclass
class ViewerConfig:
    px_per_second: float = DEFAULT_PX_PER_SECOND
    y_scale: float = 1.0
    min_px_per_second: float = 1.0
    max_px_per_second: float = 2000.0
    zoom_step: float = 1.25
    playback_interval_ms: int = 16
    default_track_opacity: float = 0.2
    decimate: bool = True
    decode_layout: str = "compact"
    decode_backend: str = "native"
    theme: str = "Light"
    slider_steps: int = 1000
    overview_height: int = 18
    ini_path: Path | None = None

    @classmethod
    def load(cls, ini_path: str | Path | None = None) -> "ViewerConfig":
        cfg = cls()
        path = Path(ini_path or "config.ini")
        if path.exists():
            import configparser

            parser = configparser.ConfigParser()
            parser.read(path)
            view = parser["view"] if "view" in parser else None
            if view:
                cfg.px_per_second = view.getfloat("px_per_second", fallback=cfg.px_per_second)
                cfg.y_scale = view.getfloat("y_scale", fallback=cfg.y_scale)
                cfg.min_px_per_second = view.getfloat(
                    "min_px_per_second", fallback=cfg.min_px_per_second
                )
                cfg.max_px_per_second = view.getfloat(
                    "max_px_per_second", fallback=cfg.max_px_per_second
                )
                cfg.zoom_step = view.getfloat("zoom_step", fallback=cfg.zoom_step)

            playback = parser["playback"] if "playback" in parser else None
            if playback:
                cfg.playback_interval_ms = playback.getint(
                    "interval_ms", fallback=cfg.playback_interval_ms
                )

            overlay = parser["overlay"] if "overlay" in parser else None
            if overlay:
                cfg.default_track_opacity = overlay.getfloat(
                    "default_opacity", fallback=cfg.default_track_opacity
                )

            render = parser["render"] if "render" in parser else None
            if render:
                cfg.decimate = render.getboolean("decimate", fallback=cfg.decimate)

            decode = parser["decode"] if "decode" in parser else None
            if decode:
                layout = decode.get("layout", fallback=cfg.decode_layout).strip().lower()
                if layout in ("compact", "standard"):
                    cfg.decode_layout = layout
                backend = decode.get("backend", fallback=cfg.decode_backend).strip().lower()
                if backend in ("native", "pyedflib"):
                    cfg.decode_backend = backend

            ui_section = parser["ui"] if "ui" in parser else None
            if ui_section:
                cfg.theme = ui_section.get("theme", fallback=cfg.theme)
                cfg.slider_steps = ui_section.getint("slider_steps", fallback=cfg.slider_steps)
                cfg.overview_height = ui_section.getint(
                    "overview_height", fallback=cfg.overview_height
                )

        if cfg.min_px_per_second <= 0:
            cfg.min_px_per_second = 1.0
        if cfg.max_px_per_second < cfg.min_px_per_second:
            cfg.max_px_per_second = cfg.min_px_per_second
        if cfg.zoom_step <= 1.0:
            cfg.zoom_step = 1.25
        cfg.playback_interval_ms = max(1, cfg.playback_interval_ms)
        cfg.slider_steps = max(1, cfg.slider_steps)
        cfg.ini_path = path
        return cfg

    def zoom_limits(self) -> ZoomLimits:
        return ZoomLimits(
            px_per_second_min=self.min_px_per_second,
            px_per_second_max=self.max_px_per_second,
        )

    def save(self) -> None:
        if self.ini_path is None:
            return
        import configparser

        parser = configparser.ConfigParser()
        parser["view"] = {
            "px_per_second": f"{self.px_per_second:.3f}",
            "y_scale": f"{self.y_scale:.3f}",
            "min_px_per_second": f"{self.min_px_per_second:.3f}",
            "max_px_per_second": f"{self.max_px_per_second:.3f}",
            "zoom_step": f"{self.zoom_step:.3f}",
        }
        parser["playback"] = {"interval_ms": str(self.playback_interval_ms)}
        parser["overlay"] = {"default_opacity": f"{self.default_track_opacity:.3f}"}
        parser["render"] = {"decimate": "true" if self.decimate else "false"}
        parser["decode"] = {"layout": self.decode_layout, "backend": self.decode_backend}
        parser["ui"] = {
            "theme": self.theme,
            "slider_steps": str(self.slider_steps),
            "overview_height": str(self.overview_height),
        }
        with self.ini_path.open("w") as fh:
            parser.write(fh)
