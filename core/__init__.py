"""Core package exports for the EDF viewer application."""

# Re-export commonly used modules for convenience.
from . import colors, decimate, edf_decoder, edf_loader, edf_writer, overlay, playback, project, render, session, timeline, viewport

__all__ = [
    "colors",
    "decimate",
    "edf_decoder",
    "edf_loader",
    "edf_writer",
    "overlay",
    "playback",
    "project",
    "render",
    "session",
    "timeline",
    "viewport",
]
