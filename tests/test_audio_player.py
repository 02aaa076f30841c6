from __future__ import annotations

import sys
from types import SimpleNamespace

import numpy as np

from canucklingo.fetchers.audio_player import AudioPlayer, decode_pcm16


def test_decode_pcm16_normalizes_samples():
    waveform = decode_pcm16(b"\xff\x7f\x00\x80\x00\x00\x00\x40")

    assert waveform.dtype == np.float32
    assert waveform.tolist() == [32767 / 32768, -1.0, 0.0, 0.5]


def test_decode_pcm16_drops_trailing_odd_byte():
    assert decode_pcm16(b"\x00\x40\x01").tolist() == [0.5]


def test_play_empty_audio_does_nothing():
    assert AudioPlayer().play(b"") is False


def test_play_hands_waveform_to_sounddevice(monkeypatch):
    played = {}

    def fake_play(data, samplerate):
        played["data"] = data
        played["samplerate"] = samplerate

    monkeypatch.setitem(sys.modules, "sounddevice", SimpleNamespace(play=fake_play))

    assert AudioPlayer().play(b"\x00\x40\x00\xc0") is True
    assert played["samplerate"] == 24000
    assert played["data"].tolist() == [0.5, -0.5]
