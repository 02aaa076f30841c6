"""
Playback of raw speech audio on the local output device.

Gemini TTS returns headerless PCM: mono, 16-bit little-endian, 24kHz.
"""

import logging

import numpy as np

from ..config import TTS_SAMPLE_RATE

logger = logging.getLogger(__name__)


def decode_pcm16(data: bytes) -> np.ndarray:
    """
    Decode 16-bit PCM into a float waveform in [-1.0, 1.0).

    A trailing odd byte is dropped.
    """
    usable = len(data) - (len(data) % 2)
    samples = np.frombuffer(data[:usable], dtype="<i2")
    return samples.astype(np.float32) / 32768.0


class AudioPlayer:
    """Plays decoded speech through sounddevice."""

    def __init__(self, sample_rate: int = TTS_SAMPLE_RATE):
        self.sample_rate = sample_rate

    def play(self, pcm: bytes) -> bool:
        """
        Decode and start playing PCM audio.

        Returns:
            True if playback started, False for empty audio
        """
        waveform = decode_pcm16(pcm)
        if waveform.size == 0:
            return False

        # PortAudio is loaded on import, so only touch it when there is sound to play
        import sounddevice as sd

        sd.play(waveform, samplerate=self.sample_rate)
        logger.debug("Playing %.2fs of audio", waveform.size / self.sample_rate)
        return True
