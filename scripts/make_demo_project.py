#!/usr/bin/env python3
"""Write a synthetic recording plus a project document that annotates it.

Run from the repository root: ``python -m scripts.make_demo_project demo``.
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path

import numpy as np

from core import edf_writer
from core.project import Event, Project, SignalRef, Track, save_project

LOG = logging.getLogger(__name__)

CHANNELS = (
    # label, frequency (Hz), physical range, unit
    ("EEG Fpz-Cz", 10.0, 200.0, "uV"),
    ("EEG Pz-Oz", 6.0, 200.0, "uV"),
    ("EOG", 0.5, 500.0, "uV"),
    ("Resp", 0.25, 1000.0, "mV"),
)


def synth_channels(duration_s: int, rate: int, *, seed: int = 0) -> list[edf_writer.ChannelSpec]:
    rng = np.random.default_rng(seed)
    t = np.arange(duration_s * rate, dtype=np.float64) / rate
    specs = []
    for label, freq, limit, unit in CHANNELS:
        wave = 0.6 * limit * np.sin(2 * np.pi * freq * t)
        wave += rng.normal(0.0, 0.05 * limit, size=t.size)
        specs.append(
            edf_writer.ChannelSpec(
                label=label,
                digital=edf_writer.digitize(wave, -limit, limit, -32768, 32767),
                samples_per_record=rate,
                physical_min=-limit,
                physical_max=limit,
                physical_dimension=unit,
            )
        )
    return specs


def synth_tracks(duration_s: int) -> list[Track]:
    stages = ("Wake", "N1", "N2", "N3", "REM")
    epoch = 30
    staging = Track(
        name="Sleep stages",
        events=[
            Event(stages[(i // epoch) % len(stages)], float(i), float(min(i + epoch, duration_s)))
            for i in range(0, duration_s, epoch)
        ],
    )
    arousals = Track(
        name="Arousals",
        opacity=0.35,
        events=[Event("Arousal", float(s), float(s + 4)) for s in range(45, duration_s - 4, 97)],
    )
    return [staging, arousals]


def main() -> None:
    p = argparse.ArgumentParser(description=__doc__)
    p.add_argument("out_dir", nargs="?", default="demo")
    p.add_argument("--name", default="demo")
    p.add_argument("--duration", type=int, default=600, help="seconds")
    p.add_argument("--rate", type=int, default=128, help="samples per second")
    p.add_argument("--layout", choices=("compact", "standard"), default="compact")
    args = p.parse_args()
    logging.basicConfig(level=logging.INFO)

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    edf_name = f"{args.name}.edf"
    edf_writer.write(
        out_dir / edf_name,
        synth_channels(args.duration, args.rate),
        layout=args.layout,
    )
    project = Project(
        project_name=args.name,
        signals=[SignalRef(edf_name, label) for label, *_ in CHANNELS],
        annotations=synth_tracks(args.duration),
    )
    path = save_project(project, out_dir)
    LOG.info("Wrote %s and %s", out_dir / edf_name, path)


if __name__ == "__main__":
    main()
