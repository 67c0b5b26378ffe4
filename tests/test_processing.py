from __future__ import annotations

import numpy as np
import pytest

from masterforge.analysis import measure_loudness, true_peak_dbtp
from masterforge.buffer import PcmBuffer
from masterforge.errors import NothingToProcessError, ProcessingError, RenderBusyError
from masterforge.mastering_options import DynamicsMode
from masterforge.parameters import MasteringParameters
from masterforge.platforms import apply_platform_target
from masterforge.processing import (
    RenderGuard,
    apply_true_peak_guard,
    build_signal_chain,
    makeup_gain_db,
    render_mastering,
)
from masterforge.processor import Compressor, Limiter, MultibandCompressor


def test_makeup_gain_uses_threshold_ratio_and_intensity() -> None:
    assert makeup_gain_db(MasteringParameters()) == pytest.approx(18.0 * 0.75 * 0.5 * 0.7)
    assert makeup_gain_db(MasteringParameters(intensity=0.0)) == 0.0


def test_chain_scales_eq_gains_by_intensity() -> None:
    chain = build_signal_chain(MasteringParameters(eq_low_db=2.0, eq_mid_db=-3.0, eq_high_db=2.0))

    gains = [stage.gain_db for stage in chain.eq_stages]
    assert gains == pytest.approx([1.4, -2.1, 1.4])
    assert [stage.frequency_hz for stage in chain.eq_stages] == [80.0, 1_000.0, 8_000.0]
    assert chain.eq_stages[1].q == 1.0


def test_chain_selects_single_band_compressor_by_default() -> None:
    chain = build_signal_chain(MasteringParameters())

    assert chain.dynamics_mode is DynamicsMode.SINGLE_BAND
    assert isinstance(chain.dynamics, Compressor)
    assert chain.dynamics.settings.knee_db == 6.0
    assert isinstance(chain.limiter, Limiter)
    assert len(chain.stages) == 6


def test_chain_selects_multiband_when_enabled() -> None:
    chain = build_signal_chain(MasteringParameters(multiband_enabled=True))

    assert chain.dynamics_mode is DynamicsMode.MULTIBAND
    assert isinstance(chain.dynamics, MultibandCompressor)
    assert chain.makeup.gain_db == pytest.approx(makeup_gain_db(MasteringParameters()))


def test_chain_clamps_out_of_range_parameters() -> None:
    chain = build_signal_chain(
        MasteringParameters(intensity=150.0, eq_high_db=30.0, comp_ratio=0.2, limiter_ceiling_dbtp=0.5)
    )

    assert chain.limiter.ceiling_db == -0.3
    assert chain.eq_stages[2].gain_db == 12.0
    assert chain.dynamics.settings.ratio == 1.0
    assert chain.makeup.gain_db == 0.0


def test_render_returns_new_buffer_with_same_layout(music_like_buffer) -> None:
    rendered = render_mastering(music_like_buffer, MasteringParameters())

    assert rendered is not music_like_buffer
    assert rendered.samples.shape == music_like_buffer.samples.shape
    assert rendered.sample_rate == music_like_buffer.sample_rate
    assert not rendered.samples.flags.writeable


def test_render_does_not_modify_source(music_like_buffer) -> None:
    before = music_like_buffer.samples.copy()

    render_mastering(music_like_buffer, MasteringParameters(eq_low_db=6.0))

    np.testing.assert_array_equal(music_like_buffer.samples, before)


def test_render_without_buffer_reports_nothing_to_process() -> None:
    with pytest.raises(NothingToProcessError) as excinfo:
        render_mastering(None, MasteringParameters())

    assert excinfo.value.code == "nothing_to_process"


def test_render_rejects_buffer_without_channels() -> None:
    with pytest.raises(ProcessingError):
        render_mastering(PcmBuffer(np.zeros((0, 128)), 44_100), MasteringParameters())


def test_render_wraps_dsp_failures(monkeypatch, music_like_buffer) -> None:
    def broken(self, audio, sample_rate):
        raise ValueError("filter exploded")

    monkeypatch.setattr(Compressor, "process", broken)

    with pytest.raises(ProcessingError, match="filter exploded"):
        render_mastering(music_like_buffer, MasteringParameters())


@pytest.mark.parametrize("error", [TypeError("bad operand"), np.linalg.LinAlgError("singular filter")])
def test_render_wraps_any_dsp_exception(monkeypatch, music_like_buffer, error) -> None:
    def broken(self, audio, sample_rate):
        raise error

    monkeypatch.setattr(Compressor, "process", broken)

    with pytest.raises(ProcessingError, match=str(error)):
        render_mastering(music_like_buffer, MasteringParameters())


def test_render_passes_engine_errors_through(monkeypatch, music_like_buffer) -> None:
    def busy(self, audio, sample_rate):
        raise RenderBusyError()

    monkeypatch.setattr(Compressor, "process", busy)

    with pytest.raises(RenderBusyError):
        render_mastering(music_like_buffer, MasteringParameters())


@pytest.mark.parametrize("ceiling", [-1.0, -0.3, -2.0])
def test_rendered_true_peak_respects_limiter_ceiling(music_like_buffer, ceiling) -> None:
    params = MasteringParameters(intensity=100.0, eq_high_db=12.0, limiter_ceiling_dbtp=ceiling)

    rendered = render_mastering(music_like_buffer, params)

    assert measure_loudness(rendered).true_peak_dbtp <= ceiling + 0.2


def test_platform_preset_moves_quiet_track_toward_target(make_sine) -> None:
    source = make_sine(440.0, 0.1, seconds=4.0, sample_rate=44_100, channels=2)
    source_measurement = measure_loudness(source)
    params = apply_platform_target(MasteringParameters(), "spotify")

    mastered = measure_loudness(render_mastering(source, params))

    assert source_measurement.integrated_lufs < -20.0
    assert mastered.integrated_lufs > source_measurement.integrated_lufs + 2.0
    assert mastered.true_peak_dbtp <= -1.0 + 0.2


def test_multiband_and_single_band_renders_differ(music_like_buffer) -> None:
    single = render_mastering(music_like_buffer, MasteringParameters())
    multi = render_mastering(music_like_buffer, MasteringParameters(multiband_enabled=True))

    assert not np.allclose(single.samples, multi.samples)


def test_stereo_width_does_not_change_render(music_like_buffer) -> None:
    narrow = render_mastering(music_like_buffer, MasteringParameters(stereo_width=20.0))
    wide = render_mastering(music_like_buffer, MasteringParameters(stereo_width=180.0))

    np.testing.assert_array_equal(narrow.samples, wide.samples)


def test_true_peak_guard_is_noop_within_tolerance() -> None:
    audio = np.full((1, 16), 10 ** (-1.05 / 20.0))

    assert apply_true_peak_guard(audio, 44_100, Limiter(-1.0)) is audio


def test_true_peak_guard_trims_overshoot() -> None:
    audio = np.full((2, 256), 0.99)

    guarded = apply_true_peak_guard(audio, 44_100, Limiter(-1.0))

    assert true_peak_dbtp(guarded) <= -1.0


def test_render_guard_rejects_overlapping_render_of_same_buffer(music_like_buffer, make_sine) -> None:
    guard = RenderGuard()

    with guard.hold(music_like_buffer):
        assert guard.is_busy(music_like_buffer)
        with pytest.raises(RenderBusyError) as excinfo:
            render_mastering(music_like_buffer, MasteringParameters(), guard=guard)
        other = render_mastering(make_sine(seconds=0.2), MasteringParameters(), guard=guard)

    assert excinfo.value.code == "busy"
    assert other.frame_count == 9_600
    assert not guard.is_busy(music_like_buffer)


def test_render_guard_releases_after_failure(monkeypatch, music_like_buffer) -> None:
    guard = RenderGuard()

    def broken(self, audio, sample_rate):
        raise ValueError("boom")

    monkeypatch.setattr(Compressor, "process", broken)
    with pytest.raises(ProcessingError):
        render_mastering(music_like_buffer, MasteringParameters(), guard=guard)

    assert not guard.is_busy(music_like_buffer)
