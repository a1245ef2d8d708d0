import numpy as np
import pytest

from chromatap.chroma import (
    EXCLUDED,
    ChromaReducer,
    compute_chroma,
    decay_chroma,
    pitch_class_map,
    reduce_chroma,
)
from chromatap.config import ChromaConfig

SR = 44_100
N = 1024
A = 9
C = 0


def _mapping() -> np.ndarray:
    return pitch_class_map(N, SR, 10, 500)


def _spike(*bins: int, value: float = 1.0) -> np.ndarray:
    frame = np.zeros(N)
    frame[list(bins)] = value
    return frame


def test_bin_nearest_440_maps_to_a() -> None:
    assert _mapping()[20] == A


@pytest.mark.parametrize("bin_index", [10, 20, 41])  # ~220, ~440, ~880 Hz
def test_octaves_share_a_pitch_class(bin_index: int) -> None:
    assert _mapping()[bin_index] == A
    chroma = compute_chroma(_spike(bin_index), 5.0, _mapping())
    assert int(np.argmax(chroma)) == A


def test_octaves_accumulate_into_one_class() -> None:
    chroma = compute_chroma(_spike(10, 20, 41), 1.0, _mapping())
    assert chroma[A] == pytest.approx(1.0)
    assert np.count_nonzero(chroma) == 1


def test_band_edges_are_inclusive() -> None:
    mapping = _mapping()
    assert mapping[9] == EXCLUDED
    assert mapping[501] == EXCLUDED
    assert mapping[10] != EXCLUDED
    assert mapping[500] != EXCLUDED


@pytest.mark.parametrize("bin_index, expect_energy", [(9, False), (10, True), (500, True), (501, False)])
def test_energy_outside_band_is_ignored(bin_index: int, expect_energy: bool) -> None:
    chroma = compute_chroma(_spike(bin_index), 5.0, _mapping())
    assert bool(chroma.any()) is expect_energy


def test_zero_hz_bin_is_excluded_even_inside_band() -> None:
    mapping = pitch_class_map(N, SR, 0, 500)
    assert mapping[0] == EXCLUDED
    assert mapping[1] != EXCLUDED


def test_notes_below_midi_zero_wrap_into_range() -> None:
    # 1 Hz per bin: every bin lies far below MIDI note 0
    mapping = pitch_class_map(10, 20, 0, 9)
    assert mapping[0] == EXCLUDED
    assert np.all((mapping[1:] >= 0) & (mapping[1:] < 12))
    assert mapping[1] == 0  # MIDI -36
    assert mapping[3] == 7  # MIDI -17


def test_mapping_is_cached_and_read_only() -> None:
    mapping = _mapping()
    assert pitch_class_map(N, SR, 10, 500) is mapping
    with pytest.raises(ValueError):
        mapping[20] = 0


def test_band_beyond_frame_is_truncated() -> None:
    mapping = pitch_class_map(64, SR, 10, 500)
    assert mapping.shape == (64,)
    assert mapping[63] != EXCLUDED


def test_single_bin_scenario() -> None:
    frame = _spike(200)  # ~4306 Hz, nearest note C8
    chroma, active = reduce_chroma(frame, 5.0, 5.0, SR, np.zeros(12), ChromaConfig())
    assert active
    assert np.count_nonzero(chroma) == 1
    assert chroma[C] == pytest.approx(1.0)


def test_sensitivity_lifts_secondary_classes() -> None:
    frame = _spike(20)
    frame[200] = 0.3
    plain = compute_chroma(frame, 1.0, _mapping())
    boosted = compute_chroma(frame, 5.0, _mapping())
    assert plain[A] == pytest.approx(1.0)
    assert plain[C] == pytest.approx(0.3)
    assert boosted[A] == pytest.approx(1.0)
    assert boosted[C] == pytest.approx(1.0)


def test_empty_accumulator_gives_zero_vector() -> None:
    chroma = compute_chroma(_spike(600), 5.0, _mapping())
    assert chroma.shape == (12,)
    assert not chroma.any()


def test_gate_is_inclusive_at_threshold() -> None:
    config = ChromaConfig()
    previous = np.full(12, 0.5)
    frame = _spike(20)

    decayed, active = reduce_chroma(frame, 0.1, 5.0, SR, previous, config)
    assert not active
    assert decayed == pytest.approx(np.full(12, 0.4))

    fresh, active = reduce_chroma(frame, 0.1 + 1e-9, 5.0, SR, previous, config)
    assert active
    assert int(np.argmax(fresh)) == A


def test_decay_path_ignores_frame_content() -> None:
    garbage = np.full(N, np.nan)
    chroma, active = reduce_chroma(garbage, 0.0, 5.0, SR, np.ones(12), ChromaConfig())
    assert not active
    assert chroma == pytest.approx(np.full(12, 0.8))


def test_decay_chroma_does_not_modify_input() -> None:
    previous = np.ones(12)
    decay_chroma(previous, 0.5)
    assert previous == pytest.approx(np.ones(12))


def test_reducer_decays_to_silence() -> None:
    reducer = ChromaReducer()
    first = reducer.update(_spike(20), 5.0, 5.0, SR)
    assert first[A] == pytest.approx(1.0)

    silence = np.zeros(N)
    level = 1.0
    for _ in range(40):
        chroma = reducer.update(silence, 0.0, 5.0, SR)
        level *= 0.8
        assert chroma[A] == pytest.approx(level)
        assert np.all(chroma <= first)
    assert reducer.chroma.max() < 1e-3


def test_reducer_never_mutates_published_vector() -> None:
    reducer = ChromaReducer()
    published = reducer.update(_spike(20), 5.0, 5.0, SR)
    reducer.update(np.zeros(N), 0.0, 5.0, SR)
    assert published[A] == pytest.approx(1.0)
    with pytest.raises(ValueError):
        published[A] = 0.0


def test_reducer_reset_returns_zero_vector() -> None:
    reducer = ChromaReducer(ChromaConfig(decay_factor=0.5))
    reducer.update(_spike(20), 5.0, 5.0, SR)
    reducer.reset()
    assert reducer.chroma.shape == (12,)
    assert not reducer.chroma.any()


def test_chroma_stays_in_unit_range() -> None:
    rng = np.random.default_rng(3)
    reducer = ChromaReducer()
    for sensitivity in (0.5, 1.0, 5.0, 20.0):
        for _ in range(10):
            frame = rng.random(N)
            chroma = reducer.update(frame, rng.uniform(0.0, 2.0), sensitivity, SR)
            assert chroma.shape == (12,)
            assert np.all((chroma >= 0.0) & (chroma <= 1.0))
