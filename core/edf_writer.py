# core/edf_writer.py
"""Write recordings in the same fixed layout that :mod:`core.edf_decoder` reads.

Used to build synthetic recordings for tests and the demo script.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Sequence

import numpy as np

from core.edf_decoder import (
    COMPACT_LAYOUT,
    SAMPLE_DTYPE,
    HeaderLayout,
    physical_scale,
    resolve_layout,
)


@dataclass
class ChannelSpec:
    label: str
    digital: np.ndarray
    samples_per_record: int
    physical_min: float = -1.0
    physical_max: float = 1.0
    digital_min: int = -32768
    digital_max: int = 32767
    physical_dimension: str = ""
    transducer: str = ""
    prefiltering: str = ""


def digitize(
    values: np.ndarray,
    physical_min: float,
    physical_max: float,
    digital_min: int,
    digital_max: int,
) -> np.ndarray:
    """Quantise physical values to int16 using the inverse of the decoder's scaling."""
    scale, offset = physical_scale(physical_min, physical_max, digital_min, digital_max)
    raw = np.round((np.asarray(values, dtype=np.float64) - offset) / scale)
    return np.clip(raw, digital_min, digital_max).astype(np.int16)


def _field(text: object, width: int) -> bytes:
    encoded = str(text).encode("latin-1")
    if len(encoded) > width:
        raise ValueError(f"{text!r} does not fit in {width} bytes")
    return encoded.ljust(width, b" ")


def _number(value: float, width: int) -> bytes:
    if float(value).is_integer():
        return _field(int(value), width)
    for digits in range(width, 0, -1):
        text = f"{value:.{digits}g}"
        if len(text) <= width:
            return _field(text, width)
    raise ValueError(f"{value!r} does not fit in {width} bytes")


def encode(
    channels: Sequence[ChannelSpec],
    *,
    record_duration_s: float = 1.0,
    layout: str | HeaderLayout = COMPACT_LAYOUT,
    declared_record_count: int | None = None,
    start: datetime | None = None,
    patient: str = "X",
    recording_id: str = "Startdate X",
) -> bytes:
    """Return the bytes of a recording holding ``channels``.

    Every channel must carry a whole number of records, and all channels the
    same number of records. ``declared_record_count`` overrides the value
    written to the header (e.g. ``-1`` for "unknown").
    """
    lay = resolve_layout(layout)
    counts: set[int] = set()
    for spec in channels:
        digital = np.asarray(spec.digital)
        if spec.samples_per_record <= 0:
            if digital.size:
                raise ValueError(f"channel {spec.label!r} has samples but no samples per record")
            continue
        if digital.size % spec.samples_per_record:
            raise ValueError(f"channel {spec.label!r} does not hold whole records")
        counts.add(digital.size // spec.samples_per_record)
    if len(counts) > 1:
        raise ValueError("channels disagree on the number of records")
    record_count = counts.pop() if counts else 0

    when = start or datetime(2000, 1, 1)
    header_bytes = lay.header_bytes(len(channels))
    head = b"".join(
        [
            _field("0", 8),
            _field(patient, 80),
            _field(recording_id, 80),
            _field(when.strftime("%d.%m.%y"), 8),
            _field(when.strftime("%H.%M.%S"), 8),
            _field(header_bytes, 8),
            _field("", 44),
            _field(record_count if declared_record_count is None else declared_record_count, 8),
            _number(record_duration_s, 8),
            _field(len(channels), 4),
        ]
    )

    values = {
        "label": lambda s: _field(s.label, 16),
        "transducer": lambda s: _field(s.transducer, 80),
        "physical_dimension": lambda s: _field(s.physical_dimension, 8),
        "physical_min": lambda s: _number(s.physical_min, 8),
        "physical_max": lambda s: _number(s.physical_max, 8),
        "digital_min": lambda s: _field(int(s.digital_min), 8),
        "digital_max": lambda s: _field(int(s.digital_max), 8),
        "prefiltering": lambda s: _field(s.prefiltering, 80),
        "samples_per_record": lambda s: _field(int(s.samples_per_record), 8),
        "reserved": lambda s: _field("", 32),
    }
    blocks = [b"".join(values[name](spec) for spec in channels) for name, _ in lay.fields]

    width = sum(max(0, spec.samples_per_record) for spec in channels)
    data = np.zeros((record_count, width), dtype=SAMPLE_DTYPE)
    col = 0
    for spec in channels:
        spr = max(0, spec.samples_per_record)
        if spr:
            data[:, col:col + spr] = np.asarray(spec.digital, dtype=np.int64).reshape(record_count, spr)
        col += spr

    return head + b"".join(blocks) + data.tobytes()


def write(path: str | Path, channels: Sequence[ChannelSpec], **kwargs) -> Path:
    out = Path(path)
    out.write_bytes(encode(channels, **kwargs))
    return out
