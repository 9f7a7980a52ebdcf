# core/edf_decoder.py
"""Decode fixed-layout EDF buffers into calibrated per-channel sample arrays.

The header is plain ASCII text at fixed byte offsets. The per-channel part of
the header is stored field-major: all labels first, then every channel's next
field, and so on. Its width therefore depends on the channel count read from
the global header, and the data region starts right after it.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import numpy as np

LOG = logging.getLogger(__name__)

GLOBAL_HEADER_BYTES = 256
RECORD_COUNT_FIELD = (236, 8)
RECORD_DURATION_FIELD = (244, 8)
CHANNEL_COUNT_FIELD = (252, 4)

SAMPLE_DTYPE = np.dtype("<i2")


class FormatError(ValueError):
    """Raised when a buffer cannot be decoded as a recording."""


@dataclass(frozen=True)
class HeaderLayout:
    """Ordered (field name, byte width) pairs of one per-channel header block."""

    name: str
    fields: Tuple[Tuple[str, int], ...]

    @property
    def channel_bytes(self) -> int:
        return sum(width for _, width in self.fields)

    def header_bytes(self, channel_count: int) -> int:
        return GLOBAL_HEADER_BYTES + channel_count * self.channel_bytes


COMPACT_LAYOUT = HeaderLayout(
    "compact",
    (
        ("label", 16),
        ("transducer", 80),
        ("physical_min", 8),
        ("physical_max", 8),
        ("digital_min", 8),
        ("digital_max", 8),
        ("prefiltering", 80),
        ("samples_per_record", 8),
        ("reserved", 32),
    ),
)

STANDARD_LAYOUT = HeaderLayout(
    "standard",
    (
        ("label", 16),
        ("transducer", 80),
        ("physical_dimension", 8),
        ("physical_min", 8),
        ("physical_max", 8),
        ("digital_min", 8),
        ("digital_max", 8),
        ("prefiltering", 80),
        ("samples_per_record", 8),
        ("reserved", 32),
    ),
)

LAYOUTS: Dict[str, HeaderLayout] = {
    COMPACT_LAYOUT.name: COMPACT_LAYOUT,
    STANDARD_LAYOUT.name: STANDARD_LAYOUT,
}


def resolve_layout(layout: str | HeaderLayout) -> HeaderLayout:
    if isinstance(layout, HeaderLayout):
        return layout
    try:
        return LAYOUTS[str(layout).strip().lower()]
    except KeyError:
        raise ValueError(f"unknown header layout: {layout!r}") from None


@dataclass(frozen=True, eq=False)
class Channel:
    label: str
    samples_per_record: int
    physical_min: float
    physical_max: float
    digital_min: int
    digital_max: int
    samples: np.ndarray
    max_abs_value: float
    sample_rate: float
    physical_dimension: str = ""

    @property
    def n_samples(self) -> int:
        return int(self.samples.shape[0])


@dataclass(frozen=True, eq=False)
class Recording:
    """Decoded recording. Immutable once built."""

    channel_count: int
    record_duration_s: float
    record_count: int
    channels: Tuple[Channel, ...] = field(default_factory=tuple)

    @property
    def duration_s(self) -> float:
        return float(self.record_count) * self.record_duration_s

    @property
    def labels(self) -> List[str]:
        return [ch.label for ch in self.channels]


# ----- scaling -------------------------------------------------------------

def physical_scale(
    physical_min: float, physical_max: float, digital_min: int, digital_max: int
) -> Tuple[float, float]:
    """Return (scale, offset) so that ``value = raw * scale + offset``."""
    if digital_max == digital_min:
        raise FormatError("digital maximum equals digital minimum")
    scale = (physical_max - physical_min) / (digital_max - digital_min)
    offset = physical_min - digital_min * scale
    return scale, offset


def build_channel(
    label: str,
    digital: np.ndarray,
    *,
    samples_per_record: int,
    physical_min: float,
    physical_max: float,
    digital_min: int,
    digital_max: int,
    record_duration_s: float,
    physical_dimension: str = "",
) -> Channel:
    """Scale raw integers to physical units and record the peak magnitude.

    ``max_abs_value`` is taken here, once, so renderers never scan a full
    channel per frame.
    """
    try:
        scale, offset = physical_scale(physical_min, physical_max, digital_min, digital_max)
    except FormatError:
        raise FormatError(
            f"channel {label!r}: digital range is empty ({digital_min}..{digital_max})"
        ) from None
    physical = np.asarray(digital, dtype=np.float64) * scale + offset
    samples = physical.astype(np.float32)
    samples.setflags(write=False)
    max_abs = float(np.abs(samples).max()) if samples.size else 0.0
    rate = samples_per_record / record_duration_s if record_duration_s > 0 else 0.0
    return Channel(
        label=label,
        samples_per_record=int(samples_per_record),
        physical_min=float(physical_min),
        physical_max=float(physical_max),
        digital_min=int(digital_min),
        digital_max=int(digital_max),
        samples=samples,
        max_abs_value=max_abs,
        sample_rate=float(rate),
        physical_dimension=physical_dimension,
    )


# ----- header parsing ------------------------------------------------------

def _read_ascii(buf: memoryview, offset: int, width: int) -> str:
    return bytes(buf[offset:offset + width]).decode("latin-1").strip()


def _parse_float(text: str, what: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise FormatError(f"{what}: not a number ({text!r})") from None
    if not math.isfinite(value):
        raise FormatError(f"{what}: not a finite number ({text!r})")
    return value


def _parse_int(text: str, what: str) -> int:
    try:
        return int(text)
    except ValueError:
        pass
    # some writers pad integers as "256.0"
    value = _parse_float(text, what)
    if not value.is_integer():
        raise FormatError(f"{what}: not an integer ({text!r})")
    return int(value)


def _channel_fields(
    buf: memoryview, channel_count: int, layout: HeaderLayout
) -> Dict[str, List[str]]:
    out: Dict[str, List[str]] = {}
    offset = GLOBAL_HEADER_BYTES
    for name, width in layout.fields:
        out[name] = [
            _read_ascii(buf, offset + i * width, width) for i in range(channel_count)
        ]
        offset += channel_count * width
    return out


def decode(buffer: bytes | bytearray | memoryview, *, layout: str | HeaderLayout = COMPACT_LAYOUT) -> Recording:
    """Decode an in-memory recording.

    Raises :class:`FormatError` when a numeric header field does not parse,
    when a channel has an empty digital range, or when the buffer is too
    short for the header or for the declared data records.
    """
    buf = memoryview(buffer).cast("B")
    lay = resolve_layout(layout)
    if len(buf) < GLOBAL_HEADER_BYTES:
        raise FormatError(f"buffer holds {len(buf)} bytes, header needs {GLOBAL_HEADER_BYTES}")

    record_count = _parse_int(_read_ascii(buf, *RECORD_COUNT_FIELD), "record count")
    record_duration = _parse_float(_read_ascii(buf, *RECORD_DURATION_FIELD), "record duration")
    channel_count = _parse_int(_read_ascii(buf, *CHANNEL_COUNT_FIELD), "channel count")
    if channel_count < 0:
        raise FormatError(f"channel count is negative ({channel_count})")

    header_bytes = lay.header_bytes(channel_count)
    if len(buf) < header_bytes:
        raise FormatError(
            f"buffer holds {len(buf)} bytes, header for {channel_count} channels needs {header_bytes}"
        )

    fields = _channel_fields(buf, channel_count, lay)
    labels = fields["label"]
    physical_min = [_parse_float(v, f"physical minimum of {labels[i]!r}") for i, v in enumerate(fields["physical_min"])]
    physical_max = [_parse_float(v, f"physical maximum of {labels[i]!r}") for i, v in enumerate(fields["physical_max"])]
    digital_min = [_parse_int(v, f"digital minimum of {labels[i]!r}") for i, v in enumerate(fields["digital_min"])]
    digital_max = [_parse_int(v, f"digital maximum of {labels[i]!r}") for i, v in enumerate(fields["digital_max"])]
    samples_per_record = [
        _parse_int(v, f"samples per record of {labels[i]!r}")
        for i, v in enumerate(fields["samples_per_record"])
    ]
    units = fields.get("physical_dimension", [""] * channel_count)

    for idx in range(channel_count):
        if samples_per_record[idx] < 0:
            raise FormatError(f"channel {labels[idx]!r}: negative samples per record")
        if digital_max[idx] == digital_min[idx]:
            raise FormatError(
                f"channel {labels[idx]!r}: digital range is empty "
                f"({digital_min[idx]}..{digital_max[idx]})"
            )

    record_width = sum(samples_per_record)
    available = (len(buf) - header_bytes) // SAMPLE_DTYPE.itemsize
    if record_count == -1:
        record_count = available // record_width if record_width else 0
        LOG.debug("Record count unknown in header; inferred %d from data size", record_count)
    elif record_count < 0:
        raise FormatError(f"record count is negative ({record_count})")

    needed = record_count * record_width
    if available < needed:
        raise FormatError(
            f"data region holds {available} samples, {record_count} records need {needed}"
        )

    if needed:
        raw = np.frombuffer(buf, dtype=SAMPLE_DTYPE, count=needed, offset=header_bytes)
    else:
        raw = np.zeros(0, dtype=SAMPLE_DTYPE)
    # rows are records, columns run channel by channel within a record
    block = raw.reshape(record_count, record_width)

    channels: List[Channel] = []
    start = 0
    for idx in range(channel_count):
        spr = samples_per_record[idx]
        digital = block[:, start:start + spr].reshape(-1)
        start += spr
        channels.append(
            build_channel(
                labels[idx],
                digital,
                samples_per_record=spr,
                physical_min=physical_min[idx],
                physical_max=physical_max[idx],
                digital_min=digital_min[idx],
                digital_max=digital_max[idx],
                record_duration_s=record_duration,
                physical_dimension=units[idx],
            )
        )

    recording = Recording(
        channel_count=channel_count,
        record_duration_s=record_duration,
        record_count=record_count,
        channels=tuple(channels),
    )
    LOG.debug(
        "Decoded %d channels, %d records of %.3f s (%.1f s total, %s layout)",
        channel_count,
        record_count,
        record_duration,
        recording.duration_s,
        lay.name,
    )
    return recording
