"""Theme definitions for the viewer UI."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ThemeDefinition:
    """Palette configuration for the viewer.

    Parameters
    ----------
    name:
        Human-friendly display name for the theme.
    pg_background / pg_foreground:
        Colors applied to the PyQtGraph canvas background and text.
    stylesheet:
        Application stylesheet snippet tailored to this palette.
    curve_colors:
        Sequence of colors used for channel traces, cycled by channel slot.
    grid_color:
        Pen color for the one-second gridlines.
    gutter_text:
        Color of the channel names painted left of the canvas.
    overview_background / playhead_color:
        Fill of an empty overview strip and the marker drawn for the viewport.
    """

    name: str
    pg_background: str
    pg_foreground: str
    stylesheet: str
    curve_colors: tuple[str, ...]
    grid_color: str
    gutter_text: str
    overview_background: str
    playhead_color: str


STYLESHEET_TEMPLATE = """
QMainWindow {{ background-color: {window_bg}; }}
QWidget {{ color: {text_primary}; }}
QLabel#timeLabel {{
    color: {text_muted};
    font-family: monospace;
}}
QFrame#controlBar {{
    background-color: {control_bg};
    border-top: 1px solid {control_border};
}}
QFrame#overviewPanel {{
    background-color: {window_bg};
}}
QLabel#overviewLabel {{
    color: {text_muted};
    font-size: 11px;
}}
QDoubleSpinBox {{
    background-color: {spinbox_bg};
    border: 1px solid {control_border};
    border-radius: 4px;
    padding: 2px 4px;
    color: {text_primary};
}}
QToolButton, QPushButton {{
    background-color: {button_bg};
    border: 1px solid {control_border};
    border-radius: 4px;
    padding: 4px 10px;
    color: {text_primary};
}}
QToolButton:hover, QPushButton:hover {{
    background-color: {button_bg_hover};
}}
QToolButton:pressed, QPushButton:pressed {{
    background-color: {button_bg_pressed};
}}
QSlider::groove:horizontal {{
    background: {control_border};
    height: 4px;
    border-radius: 2px;
}}
QSlider::handle:horizontal {{
    background: {accent};
    width: 12px;
    margin: -5px 0;
    border-radius: 6px;
}}
"""


def _make_stylesheet(palette: dict[str, str]) -> str:
    return STYLESHEET_TEMPLATE.format(**palette)


DEFAULT_THEME = "Light"


THEMES: dict[str, ThemeDefinition] = {
    "Light": ThemeDefinition(
        name="Light",
        pg_background="#ffffff",
        pg_foreground="#1f2933",
        stylesheet=_make_stylesheet(
            {
                "window_bg": "#f5f7fa",
                "text_primary": "#1f2933",
                "text_muted": "#52606d",
                "control_bg": "#e4e7eb",
                "control_border": "#cbd2d9",
                "spinbox_bg": "#ffffff",
                "button_bg": "#ffffff",
                "button_bg_hover": "#f0f4f8",
                "button_bg_pressed": "#d9e2ec",
                "accent": "#2f6fdf",
            }
        ),
        curve_colors=("#1f2933",),
        grid_color="#d0d5db",
        gutter_text="#323f4b",
        overview_background="#e4e7eb",
        playhead_color="#2f6fdf",
    ),
    "Midnight": ThemeDefinition(
        name="Midnight",
        pg_background="#0b111c",
        pg_foreground="#e3e7f3",
        stylesheet=_make_stylesheet(
            {
                "window_bg": "#0b111c",
                "text_primary": "#e6ebf5",
                "text_muted": "#9ba9bf",
                "control_bg": "#131b2b",
                "control_border": "#1f2a3d",
                "spinbox_bg": "#121a2a",
                "button_bg": "#1a2333",
                "button_bg_hover": "#25314a",
                "button_bg_pressed": "#172132",
                "accent": "#5f8bff",
            }
        ),
        curve_colors=(
            "#5f8bff",
            "#f4b860",
            "#5dd39e",
            "#f57f7f",
            "#c792ea",
        ),
        grid_color="#1f2a3d",
        gutter_text="#dfe7ff",
        overview_background="#131b2b",
        playhead_color="#f4b860",
    ),
}


def resolve_theme(name: str | None) -> ThemeDefinition:
    """Return the named theme, falling back to :data:`DEFAULT_THEME`."""
    if name and name in THEMES:
        return THEMES[name]
    return THEMES[DEFAULT_THEME]
