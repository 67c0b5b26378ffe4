from __future__ import annotations

import io
import struct

import numpy as np
import pytest
import soundfile as sf

from masterforge.audio_contract import export_filename, sample_rate_label
from masterforge.buffer import PcmBuffer
from masterforge.encoding import (
    ExportRequest,
    encode_mp3,
    encode_wav,
    export_buffer,
    quantize_mp3_input,
    quantize_pcm16,
    quantize_pcm24,
)
from masterforge.errors import (
    EncodingUnavailableError,
    InvalidParameterError,
    NothingToProcessError,
    ProcessingError,
)
from masterforge.infrastructure.pedalboard_codec import decode_audio_bytes, write_mp3_bytes
from masterforge.mastering_options import ExportFormat


def _fmt_chunk(payload: bytes) -> tuple[int, int, int, int, int, int]:
    return struct.unpack("<HHIIHH", payload[20:36])


def test_wav16_header_is_canonical(make_sine) -> None:
    buffer = make_sine(seconds=0.01, sample_rate=44_100, channels=2)

    payload = encode_wav(buffer, 16)

    assert payload[:4] == b"RIFF"
    assert payload[8:16] == b"WAVEfmt "
    assert payload[36:40] == b"data"
    assert struct.unpack("<I", payload[4:8])[0] == len(payload) - 8
    assert struct.unpack("<I", payload[40:44])[0] == buffer.frame_count * 2 * 2
    assert _fmt_chunk(payload) == (1, 2, 44_100, 44_100 * 4, 4, 16)


def test_wav16_round_trip_stays_within_one_step(make_sine) -> None:
    buffer = make_sine(997.0, 0.8, seconds=0.1, sample_rate=48_000, channels=2)

    payload = encode_wav(buffer, 16)
    decoded = np.frombuffer(payload[44:], dtype="<i2").reshape(-1, 2).T / 32767.0

    assert np.max(np.abs(decoded - buffer.samples)) < 1.0 / 32767.0


def test_wav16_decodes_with_soundfile(make_sine) -> None:
    buffer = make_sine(440.0, 0.5, seconds=0.2, sample_rate=44_100, channels=2)

    data, sample_rate = sf.read(io.BytesIO(encode_wav(buffer, 16)), dtype="float64")

    assert sample_rate == 44_100
    assert data.shape == (buffer.frame_count, 2)
    np.testing.assert_allclose(data.T, buffer.samples, atol=2.0 / 32768.0)


def test_wav24_decodes_with_soundfile(make_sine) -> None:
    buffer = make_sine(440.0, 0.5, seconds=0.2, sample_rate=48_000, channels=1)
    payload = encode_wav(buffer, 24)

    info = sf.info(io.BytesIO(payload))
    data, _ = sf.read(io.BytesIO(payload), dtype="float64")

    assert info.subtype == "PCM_24"
    np.testing.assert_allclose(data, buffer.channel(0), atol=2.0 / 8388608.0)


def test_wav16_and_wav24_differ_only_in_sample_width(make_sine) -> None:
    buffer = make_sine(seconds=0.05, sample_rate=48_000, channels=2)

    wav16 = encode_wav(buffer, 16)
    wav24 = encode_wav(buffer, 24)

    channels16, rate16 = _fmt_chunk(wav16)[1:3]
    channels24, rate24 = _fmt_chunk(wav24)[1:3]
    assert (channels16, rate16) == (channels24, rate24) == (2, 48_000)
    assert _fmt_chunk(wav16)[5] == 16
    assert _fmt_chunk(wav24)[5] == 24
    assert (len(wav16) - 44) // 2 == (len(wav24) - 44) // 3


def test_pcm16_quantization_clamps_and_truncates() -> None:
    values = quantize_pcm16(np.array([1.5, -1.5, 0.5, -0.5, 0.0]))

    assert values.tolist() == [32767, -32767, 16383, -16383, 0]


def test_pcm24_quantization_rounds_and_clamps() -> None:
    values = quantize_pcm24(np.array([1.0, -1.0, 2.0, 0.5]))

    assert values.tolist() == [8388607, -8388607, 8388607, 4194304]


def test_wav24_packs_three_little_endian_bytes() -> None:
    buffer = PcmBuffer(np.array([[1.0, -1.0, 0.0]]), 48_000)

    data = encode_wav(buffer, 24)[44:]

    assert data == b"\xff\xff\x7f" + b"\x01\x00\x80" + b"\x00\x00\x00"


def test_unsupported_bit_depth_is_rejected(make_sine) -> None:
    with pytest.raises(InvalidParameterError):
        encode_wav(make_sine(seconds=0.01), 32)


def test_mp3_input_is_rounded_to_int16() -> None:
    values = quantize_mp3_input(np.array([[1.2, -1.2, 0.5, -0.5]]))

    assert values.dtype == np.int16
    assert values.tolist() == [[32767, -32767, 16384, -16384]]


def test_mp3_encoder_receives_int16_channel_first_pcm(monkeypatch, make_sine) -> None:
    captured = {}

    def fake_writer(pcm16, sample_rate):
        captured["shape"] = pcm16.shape
        captured["dtype"] = pcm16.dtype
        captured["sample_rate"] = sample_rate
        return b"ID3fake"

    monkeypatch.setattr("masterforge.encoding.write_mp3_bytes", fake_writer)

    payload = encode_mp3(make_sine(seconds=0.1, sample_rate=44_100, channels=2))

    assert payload == b"ID3fake"
    assert captured == {"shape": (2, 4_410), "dtype": np.int16, "sample_rate": 44_100}


def test_mp3_rejects_more_than_two_channels(make_sine) -> None:
    with pytest.raises(ProcessingError):
        encode_mp3(make_sine(seconds=0.05, sample_rate=44_100, channels=3))


def test_mp3_backend_failure_surfaces_as_encoding_unavailable(monkeypatch, make_sine) -> None:
    def unavailable(pcm16, sample_rate):
        raise EncodingUnavailableError("MP3 encoder unavailable: no LAME")

    monkeypatch.setattr("masterforge.encoding.write_mp3_bytes", unavailable)

    with pytest.raises(EncodingUnavailableError) as excinfo:
        export_buffer(make_sine(sample_rate=44_100), ExportRequest(ExportFormat.MP3, 44_100))

    assert excinfo.value.code == "encoding_unavailable"


def test_mp3_encodes_and_decodes_with_pedalboard(make_sine) -> None:
    buffer = make_sine(440.0, 0.5, seconds=1.0, sample_rate=44_100, channels=2)

    payload = encode_mp3(buffer)
    decoded = decode_audio_bytes(payload)

    assert len(payload) > 1_000
    assert decoded.sample_rate == 44_100
    assert decoded.channel_count == 2


def test_export_resamples_and_names_wav(make_sine) -> None:
    buffer = make_sine(seconds=0.5, sample_rate=44_100, channels=2)

    result = export_buffer(buffer, ExportRequest(ExportFormat.WAV24, 48_000, basename="song"))

    assert result.filename == "song_mastered_24bit_48k.wav"
    assert result.media_type == "audio/wav"
    assert result.frame_count == 24_000
    assert struct.unpack("<I", result.payload[24:28])[0] == 48_000


def test_export_names_wav16_with_fractional_rate(make_sine) -> None:
    result = export_buffer(make_sine(seconds=0.1, sample_rate=44_100), ExportRequest(ExportFormat.WAV16))

    assert result.filename == "track_mastered_16bit_44.1k.wav"


def test_export_names_mp3_by_bitrate(monkeypatch, make_sine) -> None:
    monkeypatch.setattr("masterforge.encoding.write_mp3_bytes", lambda pcm16, sample_rate: b"mp3")

    result = export_buffer(
        make_sine(seconds=0.1, sample_rate=44_100), ExportRequest(ExportFormat.MP3, 44_100, "demo")
    )

    assert result.filename == "demo_mastered_320kbps.mp3"
    assert result.media_type == "audio/mpeg"


@pytest.mark.parametrize(
    ("export_format", "rate"),
    [(ExportFormat.WAV16, 22_050), (ExportFormat.MP3, 96_000), (ExportFormat.WAV24, 192_000)],
)
def test_export_rejects_unsupported_rates(make_sine, export_format, rate) -> None:
    with pytest.raises(InvalidParameterError):
        export_buffer(make_sine(seconds=0.1), ExportRequest(export_format, rate))


def test_export_without_buffer_reports_nothing_to_process() -> None:
    with pytest.raises(NothingToProcessError):
        export_buffer(None, ExportRequest(ExportFormat.WAV16))


def test_export_request_parses_format_case_insensitively() -> None:
    request = ExportRequest.from_raw("MP3", 48_000)

    assert request.export_format is ExportFormat.MP3
    assert request.basename == "track"


def test_export_request_rejects_unknown_format() -> None:
    with pytest.raises(InvalidParameterError, match="Allowed values"):
        ExportRequest.from_raw("flac")


def test_filename_helpers() -> None:
    assert sample_rate_label(44_100) == "44.1k"
    assert sample_rate_label(96_000) == "96k"
    assert export_filename("", ExportFormat.WAV16, 88_200) == "track_mastered_16bit_88.2k.wav"


def test_mp3_writer_rejects_bad_channel_layout_as_processing_error() -> None:
    with pytest.raises(ProcessingError, match="1 or 2 channels"):
        write_mp3_bytes(np.zeros((3, 1_152), dtype=np.int16), 44_100)


def test_mp3_writer_reports_missing_backend_as_unavailable(monkeypatch) -> None:
    def no_encoder(*args, **kwargs):
        raise ValueError("Unsupported file format: mp3")

    monkeypatch.setattr("masterforge.infrastructure.pedalboard_codec.AudioFile", no_encoder)

    with pytest.raises(EncodingUnavailableError):
        write_mp3_bytes(np.zeros((2, 1_152), dtype=np.int16), 44_100)


def test_mp3_writer_reports_write_failure_as_processing_error(monkeypatch) -> None:
    class FailingWriter:
        def __init__(self, *args, **kwargs) -> None:
            pass

        def __enter__(self):
            return self

        def __exit__(self, *exc_info) -> None:
            return None

        def write(self, samples) -> None:
            raise RuntimeError("encoder rejected frame")

    monkeypatch.setattr("masterforge.infrastructure.pedalboard_codec.AudioFile", FailingWriter)

    with pytest.raises(ProcessingError, match="encoder rejected frame"):
        write_mp3_bytes(np.zeros((2, 1_152), dtype=np.int16), 44_100)
