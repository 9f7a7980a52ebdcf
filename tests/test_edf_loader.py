from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

import core.edf_loader as edf_module
from core import edf_writer
from core.edf_decoder import FormatError, decode
from core.edf_writer import ChannelSpec


class FakeEdfReader:
    def __init__(self, path: str):  # noqa: D401 - mimic pyedflib signature
        self.path = path
        self.signals_in_file = 2
        self.datarecords_in_file = 3
        self.file_duration = 6.0
        self._labels = ["chan_a  ", "chan_b"]
        self._units = ["uV", ""]
        self._digital = [
            np.arange(-6, 6, dtype=np.int32) * 10,
            np.array([0, 32767, -32768], dtype=np.int32),
        ]
        self._physical_min = [-100.0, -1.0]
        self._physical_max = [100.0, 1.0]
        self._digital_min = [-100, -32768]
        self._digital_max = [100, 32767]
        self.closed = False
        self.digital_flags: list[bool] = []

    # --- pyedflib API we rely on -------------------------------------------------
    def getSignalLabels(self):
        return list(self._labels)

    def getNSamples(self):
        return np.array([arr.size for arr in self._digital])

    def readSignal(self, idx: int, digital: bool = False):
        self.digital_flags.append(digital)
        return self._digital[idx].copy()

    def getPhysicalMinimum(self, idx: int) -> float:
        return self._physical_min[idx]

    def getPhysicalMaximum(self, idx: int) -> float:
        return self._physical_max[idx]

    def getDigitalMinimum(self, idx: int) -> int:
        return self._digital_min[idx]

    def getDigitalMaximum(self, idx: int) -> int:
        return self._digital_max[idx]

    def getPhysicalDimension(self, idx: int) -> str:
        return self._units[idx]

    def close(self):
        self.closed = True


@pytest.fixture
def fake_pyedflib(monkeypatch):
    readers: list[FakeEdfReader] = []

    def _factory(path: str) -> FakeEdfReader:
        reader = FakeEdfReader(path)
        readers.append(reader)
        return reader

    monkeypatch.setattr(edf_module, "pyedflib", SimpleNamespace(EdfReader=_factory))
    return readers


def test_pyedflib_backend_scales_digital_samples(fake_pyedflib):
    rec = edf_module.load_recording("fake.edf", backend="pyedflib")
    reader = fake_pyedflib[0]
    assert reader.closed
    assert reader.digital_flags == [True, True]

    assert rec.channel_count == 2
    assert rec.record_count == 3
    assert rec.record_duration_s == pytest.approx(2.0)
    assert rec.labels == ["chan_a", "chan_b"]

    chan_a = rec.channels[0]
    assert chan_a.samples_per_record == 4
    assert chan_a.sample_rate == pytest.approx(2.0)
    assert chan_a.physical_dimension == "uV"
    np.testing.assert_allclose(chan_a.samples, np.arange(-6, 6) * 10.0)
    assert chan_a.max_abs_value == pytest.approx(60.0)

    chan_b = rec.channels[1]
    assert chan_b.samples_per_record == 1
    assert chan_b.samples[1] == pytest.approx(1.0)
    assert chan_b.samples[2] == pytest.approx(-1.0)


def test_pyedflib_open_failure_becomes_format_error(monkeypatch):
    def _broken(path: str):
        raise OSError("not an EDF file")

    monkeypatch.setattr(edf_module, "pyedflib", SimpleNamespace(EdfReader=_broken))
    with pytest.raises(FormatError, match="could not open"):
        edf_module.load_recording("broken.edf", backend="pyedflib")


def test_pyedflib_reader_closed_on_error(fake_pyedflib, monkeypatch):
    monkeypatch.setattr(FakeEdfReader, "getDigitalMaximum", lambda self, idx: self._digital_min[idx])
    with pytest.raises(FormatError):
        edf_module.load_recording("fake.edf", backend="pyedflib")
    assert fake_pyedflib[0].closed


def test_native_backend_reads_file(tmp_path: Path):
    digital = np.array([100, -100, 0, 50], dtype=np.int16)
    path = edf_writer.write(
        tmp_path / "rec.edf",
        [ChannelSpec("Fpz", digital, 2, -1.0, 1.0, -100, 100)],
    )
    rec = edf_module.load_recording(path)
    np.testing.assert_allclose(rec.channels[0].samples, [1.0, -1.0, 0.0, 0.5], atol=1e-6)
    assert rec.record_count == 2


def test_native_backend_honours_layout(tmp_path: Path):
    spec = ChannelSpec("Fpz", np.array([1, 2], dtype=np.int16), 2, physical_dimension="mV")
    path = edf_writer.write(tmp_path / "std.edf", [spec], layout="standard")
    rec = edf_module.load_recording(path, layout="standard")
    assert rec.channels[0].physical_dimension == "mV"


def test_backends_agree_on_samples(tmp_path: Path, fake_pyedflib):
    reader = FakeEdfReader("unused")
    specs = [
        ChannelSpec(
            reader._labels[idx].strip(),
            reader._digital[idx].astype(np.int16),
            reader._digital[idx].size // reader.datarecords_in_file,
            reader._physical_min[idx],
            reader._physical_max[idx],
            reader._digital_min[idx],
            reader._digital_max[idx],
        )
        for idx in range(reader.signals_in_file)
    ]
    native = decode(edf_writer.encode(specs, record_duration_s=2.0))
    via_pyedflib = edf_module.load_recording(tmp_path / "any.edf", backend="pyedflib")
    for a, b in zip(native.channels, via_pyedflib.channels):
        np.testing.assert_array_equal(a.samples, b.samples)
        assert a.max_abs_value == b.max_abs_value
        assert a.sample_rate == b.sample_rate


def test_unknown_backend():
    with pytest.raises(ValueError):
        edf_module.load_recording("x.edf", backend="mne")
