"""Tests for manifest loading and validation."""

import json
from pathlib import Path

import pytest

from audiocut.manifest import EncoderConfig, Manifest, load_manifest, parse_encoder
from audiocut.models import AudioFormat, AudioSegment


class TestEncoderConfig:
    def test_defaults(self):
        cfg = EncoderConfig()
        assert cfg.format is None
        assert cfg.bit_rate == 192
        assert cfg.sample_rate == 44100

    def test_parse_case_insensitive_format(self):
        cfg = parse_encoder({"format": "Flac", "bit_rate": "320"})
        assert cfg.format is AudioFormat.FLAC
        assert cfg.bit_rate == 320


class TestManifest:
    def test_minimal(self):
        m = Manifest(input=Path("in.wav"), output=Path("out.ogg"))
        assert m.version == "1"
        assert m.segment is None
        assert m.output_format is AudioFormat.OGG

    def test_unknown_extension_defaults_to_mp3(self):
        m = Manifest(input=Path("in.wav"), output=Path("out"))
        assert m.output_format is AudioFormat.MP3

    def test_explicit_format_wins(self):
        m = Manifest(
            input=Path("in.wav"),
            output=Path("out.ogg"),
            encoder=EncoderConfig(format=AudioFormat.WAV),
        )
        assert m.output_format is AudioFormat.WAV


class TestLoadManifest:
    def test_load_sample(self, sample_manifest_path: Path):
        m = load_manifest(sample_manifest_path)
        assert m.version == "1"
        assert m.input == Path("song.wav")
        assert m.segment == AudioSegment(start_time=2.0, end_time=5.0)
        assert m.encoder.format is AudioFormat.MP3
        assert m.encoder.bit_rate == 192

    def test_load_invalid_json(self, tmp_path: Path):
        bad = tmp_path / "bad.json"
        bad.write_text("not json")
        with pytest.raises(json.JSONDecodeError):
            load_manifest(bad)

    def test_load_missing_fields(self, tmp_path: Path):
        incomplete = tmp_path / "incomplete.json"
        incomplete.write_text('{"version": "1"}')
        with pytest.raises(ValueError, match="must contain"):
            load_manifest(incomplete)

    def test_load_inverted_segment(self, tmp_path: Path):
        path = tmp_path / "m.json"
        path.write_text(json.dumps({
            "input": "a.wav", "output": "b.mp3", "segment": {"start": 5, "end": 2},
        }))
        with pytest.raises(ValueError, match="before its start"):
            load_manifest(path)

    def test_load_segment_missing_end(self, tmp_path: Path):
        path = tmp_path / "m.json"
        path.write_text(json.dumps({"input": "a.wav", "output": "b.mp3", "segment": {"start": 5}}))
        with pytest.raises(ValueError, match="'start' and 'end'"):
            load_manifest(path)
