# core/edf_loader.py
"""Load recordings from disk through the native decoder or through pyEDFlib."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import numpy as np
import pyedflib

from core.edf_decoder import (
    COMPACT_LAYOUT,
    Channel,
    FormatError,
    HeaderLayout,
    Recording,
    build_channel,
    decode,
)

LOG = logging.getLogger(__name__)

BACKENDS = ("native", "pyedflib")


def load_recording(
    path: str | Path,
    *,
    backend: str = "native",
    layout: str | HeaderLayout = COMPACT_LAYOUT,
) -> Recording:
    """Read ``path`` and return a decoded :class:`Recording`.

    ``backend="pyedflib"`` lets pyEDFlib parse the header and hand back raw
    digital samples; scaling and the peak-magnitude pass still happen in
    :func:`core.edf_decoder.build_channel`, so both backends yield the same
    samples. ``layout`` only applies to the native backend.
    """
    kind = str(backend).strip().lower()
    if kind not in BACKENDS:
        raise ValueError(f"unknown decode backend: {backend!r}")
    if kind == "pyedflib":
        return _load_with_pyedflib(str(path))
    data = Path(path).read_bytes()
    LOG.debug("Read %d bytes from %s", len(data), path)
    return decode(data, layout=layout)


def _load_with_pyedflib(path: str) -> Recording:
    try:
        reader = pyedflib.EdfReader(path)
    except OSError as exc:
        raise FormatError(f"pyEDFlib could not open {path}: {exc}") from exc
    try:
        n_signals = int(reader.signals_in_file)
        record_count = int(reader.datarecords_in_file)
        duration = float(reader.file_duration)
        record_duration = duration / record_count if record_count > 0 else 0.0
        labels = reader.getSignalLabels()
        n_samples = reader.getNSamples()

        channels: List[Channel] = []
        for idx in range(n_signals):
            total = int(n_samples[idx])
            spr = total // record_count if record_count > 0 else 0
            digital = np.asarray(reader.readSignal(idx, digital=True), dtype=np.int32)
            channels.append(
                build_channel(
                    str(labels[idx]).strip(),
                    digital[: spr * record_count],
                    samples_per_record=spr,
                    physical_min=float(reader.getPhysicalMinimum(idx)),
                    physical_max=float(reader.getPhysicalMaximum(idx)),
                    digital_min=int(reader.getDigitalMinimum(idx)),
                    digital_max=int(reader.getDigitalMaximum(idx)),
                    record_duration_s=record_duration,
                    physical_dimension=str(reader.getPhysicalDimension(idx)).strip(),
                )
            )
    finally:
        reader.close()

    LOG.debug("pyEDFlib decoded %d channels from %s", len(channels), path)
    return Recording(
        channel_count=len(channels),
        record_duration_s=record_duration,
        record_count=record_count,
        channels=tuple(channels),
    )
