"""Tests for :class:`chromatap.chroma_worker.ChromaWorker`."""

from __future__ import annotations

import logging
import sys
import types

import numpy as np
import pytest

# PortAudio is not available on CI machines
sys.modules.setdefault("sounddevice", types.SimpleNamespace())

from chromatap import chroma_worker  # noqa: E402
from chromatap.errors import ConfigurationError  # noqa: E402

SR = 44_100


def _block(freq: float, amplitude: float, start: int = 0, size: int = 2048) -> np.ndarray:
    t = (np.arange(size) + start) / SR
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32).reshape(-1, 1)


class _Recorder:
    def __init__(self, worker: chroma_worker.ChromaWorker) -> None:
        self.chroma: list[list[float]] = []
        self.loudness: list[float] = []
        self.status: list[str] = []
        self.errors: list[str] = []
        worker.chromaChanged.connect(lambda value: self.chroma.append(value))
        worker.loudnessChanged.connect(lambda value: self.loudness.append(value))
        worker.statusChanged.connect(lambda value: self.status.append(value))
        worker.errorOccurred.connect(lambda value: self.errors.append(value))


@pytest.fixture
def worker() -> chroma_worker.ChromaWorker:
    return chroma_worker.ChromaWorker(sensitivity=1.0)


def test_callback_emits_chroma_for_tone(worker) -> None:
    rec = _Recorder(worker)
    worker._callback(_block(440.0, 0.9), 2048, None, None)
    worker._callback(_block(440.0, 0.9, start=2048), 2048, None, None)

    assert len(rec.chroma) == 2
    latest = rec.chroma[-1]
    assert len(latest) == 12
    assert int(np.argmax(latest)) == 9
    assert 0.5 < rec.loudness[-1] <= 1.0
    assert rec.status[-1] == chroma_worker.STATUS_MUSIC


def test_quiet_input_reports_listening(worker) -> None:
    rec = _Recorder(worker)
    worker._callback(_block(440.0, 0.01), 2048, None, None)
    assert rec.status == [chroma_worker.STATUS_LISTENING]
    assert rec.chroma[-1] == [0.0] * 12


def test_stereo_input_is_downmixed(worker) -> None:
    rec = _Recorder(worker)
    tone = _block(440.0, 0.9)
    worker._callback(np.hstack([tone, tone]), 2048, None, None)
    assert int(np.argmax(rec.chroma[-1])) == 9


def test_bad_block_is_logged_not_raised(worker, caplog) -> None:
    rec = _Recorder(worker)
    bad = np.full((2048, 1), np.nan, dtype=np.float32)
    with caplog.at_level(logging.ERROR, logger="chromatap.chroma_worker"):
        worker._callback(bad, 2048, None, None)
    assert "Failed to process audio block" in caplog.text
    assert rec.chroma == []
    assert worker.pipeline.snapshot().frame_index == 0


def test_stop_resets_published_state(worker) -> None:
    rec = _Recorder(worker)
    worker._callback(_block(440.0, 0.9), 2048, None, None)
    worker.stop()
    assert rec.chroma[-1] == [0.0] * 12
    assert rec.loudness[-1] == 0.0
    assert rec.status[-1] == chroma_worker.STATUS_STOPPED
    assert worker.pipeline.snapshot().frame_index == 0


def test_set_sensitivity_validates(worker) -> None:
    worker.set_sensitivity(12.0)
    assert worker.pipeline.sensitivity == 12.0
    with pytest.raises(ConfigurationError):
        worker.set_sensitivity(-1.0)


def test_run_reports_device_failure(worker, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_stream(**_kwargs):
        raise RuntimeError("no microphone")

    monkeypatch.setattr(chroma_worker.sd, "InputStream", broken_stream, raising=False)
    rec = _Recorder(worker)
    worker.run()
    assert len(rec.errors) == 1
    assert "no microphone" in rec.errors[0]
    assert worker.stream is None


def test_supplied_pipeline_sets_block_geometry() -> None:
    pipeline = chroma_worker.ChromaPipeline(22_050, n_bins=512)
    worker = chroma_worker.ChromaWorker(pipeline=pipeline)
    assert worker.fft_size == 1024
    assert worker.sample_rate == 22_050
    assert worker.pipeline is pipeline


class _FakeStream:
    """``InputStream`` replacement recording lifecycle calls."""

    def __init__(self, log: list[str], **kwargs) -> None:
        self.log = log
        self.callback = kwargs.get("callback")

    def start(self) -> None:
        self.log.append("start")

    def stop(self) -> None:
        self.log.append("stop")

    def abort(self) -> None:
        self.log.append("abort")

    def close(self) -> None:
        self.log.append("close")


def test_stop_aborts_stream_before_publishing_reset(worker) -> None:
    log: list[str] = []
    worker.stream = _FakeStream(log)
    worker.chromaChanged.connect(lambda _value: log.append("publish"))
    worker._callback(_block(440.0, 0.9), 2048, None, None)
    worker.stop()
    assert log == ["publish", "abort", "close", "publish"]
    assert worker.stream is None


def test_worker_can_run_again_after_stop(worker, monkeypatch: pytest.MonkeyPatch) -> None:
    log: list[str] = []
    monkeypatch.setattr(
        chroma_worker.sd,
        "InputStream",
        lambda **kwargs: _FakeStream(log, **kwargs),
        raising=False,
    )

    def fake_sleep(_ms: int) -> None:
        log.append("sleep")
        worker._stop_event.set()

    monkeypatch.setattr(chroma_worker.sd, "sleep", fake_sleep, raising=False)
    rec = _Recorder(worker)

    worker.stop()
    worker.run()

    assert log == ["start", "sleep", "stop", "close"]
    assert chroma_worker.STATUS_LISTENING in rec.status
    assert worker.stream is None
