"""Voices: smoothly gliding tones, one per tracked slot."""

from typing import Callable, Dict, List

from faceeraser.util import (
    DFLT_BASE_FREQ,
    DFLT_VOICE_DETUNE,
    DFLT_N_SLOTS,
    DFLT_UPDATE_TIME_CONSTANT,
    DFLT_SILENCE_TIME_CONSTANT,
    smoothing_factor,
)

# -------------------------------------------------------------------------------
# Tone generators
# -------------------------------------------------------------------------------
# A tone generator is what actually makes sound. It receives targets and a time
# constant, and is in charge of gliding to them at audio rate. The one that makes
# sound lives in `faceeraser.synth` (it needs pyo).


class NullTone:
    """A tone generator that makes no sound, but remembers what it was asked to do."""

    def __init__(self, freq=DFLT_BASE_FREQ, volume=0.0, **kwargs):
        self.freq = freq
        self.volume = volume
        self.time_constant = None
        self.n_updates = 0
        self.stopped = False

    def set(self, freq, volume, time_constant):
        if freq is not None:
            self.freq = freq
        self.volume = volume
        self.time_constant = time_constant
        self.n_updates += 1

    def stop(self):
        self.stopped = True


# -------------------------------------------------------------------------------
# Voice
# -------------------------------------------------------------------------------


def _checked_time_constant(time_constant, default):
    if time_constant is None:
        return default
    if time_constant <= 0:
        raise ValueError(f"time_constant must be positive, got {time_constant}")
    return time_constant


class AudioVoice:
    """
    The voice of one slot: a target (freq, volume) and the current values that glide
    toward it.

    `set_target` and `silence` only ever move targets. Current values are moved by
    `tick`, which closes a `1 - exp(-dt / time_constant)` fraction of the gap, so
    they never jump. The tone generator is handed the same targets and time
    constants and does its own gliding at audio rate.

    >>> voice = AudioVoice(900)
    >>> voice.set_target(1000, 0.5)
    >>> voice.current_volume
    0.0
    >>> voice.tick(0.04)
    >>> round(voice.current_volume, 3)
    0.316
    >>> voice.silence()
    >>> voice.target_freq, voice.target_volume
    (1000.0, 0.0)
    """

    def __init__(
        self,
        base_freq: float = DFLT_BASE_FREQ,
        *,
        tone=None,
        update_time_constant: float = DFLT_UPDATE_TIME_CONSTANT,
        silence_time_constant: float = DFLT_SILENCE_TIME_CONSTANT,
    ):
        self.base_freq = float(base_freq)
        self.update_time_constant = _checked_time_constant(
            update_time_constant, DFLT_UPDATE_TIME_CONSTANT
        )
        self.silence_time_constant = _checked_time_constant(
            silence_time_constant, DFLT_SILENCE_TIME_CONSTANT
        )

        self.current_freq = self.target_freq = self.base_freq
        self.current_volume = self.target_volume = 0.0
        self._freq_time_constant = self.update_time_constant
        self._volume_time_constant = self.update_time_constant

        if tone is None:
            tone = NullTone(self.base_freq, 0.0)
        self.tone = tone

    def set_target(self, freq: float, volume: float, time_constant=None) -> None:
        """Aim for a new frequency and volume."""
        time_constant = _checked_time_constant(
            time_constant, self.update_time_constant
        )
        self.target_freq = float(freq)
        self.target_volume = float(volume)
        self._freq_time_constant = self._volume_time_constant = time_constant
        self.tone.set(self.target_freq, self.target_volume, time_constant)

    def silence(self, time_constant=None) -> None:
        """Aim for silence. The frequency target is left where it was."""
        time_constant = _checked_time_constant(
            time_constant, self.silence_time_constant
        )
        self.target_volume = 0.0
        self._volume_time_constant = time_constant
        self.tone.set(None, 0.0, time_constant)

    def tick(self, dt: float) -> None:
        """Move the current values toward the targets, as `dt` seconds went by."""
        freq_step = smoothing_factor(dt, self._freq_time_constant)
        volume_step = smoothing_factor(dt, self._volume_time_constant)
        self.current_freq += (self.target_freq - self.current_freq) * freq_step
        self.current_volume += (self.target_volume - self.current_volume) * volume_step

    def state(self) -> Dict[str, float]:
        return {
            'current_freq': self.current_freq,
            'current_volume': self.current_volume,
            'target_freq': self.target_freq,
            'target_volume': self.target_volume,
        }

    def stop(self):
        self.tone.stop()


def make_voices(
    n_slots: int = DFLT_N_SLOTS,
    *,
    tone_factory: Callable = NullTone,
    base_freq: float = DFLT_BASE_FREQ,
    detune: float = DFLT_VOICE_DETUNE,
    update_time_constant: float = DFLT_UPDATE_TIME_CONSTANT,
    silence_time_constant: float = DFLT_SILENCE_TIME_CONSTANT,
) -> List[AudioVoice]:
    """
    One voice per slot, each detuned from the previous one, so two people can be
    told apart by ear.

    >>> [v.base_freq for v in make_voices(2)]
    [900.0, 1020.0]
    """
    voices = []
    for slot in range(n_slots):
        freq = base_freq + slot * detune
        voices.append(
            AudioVoice(
                freq,
                tone=tone_factory(freq, 0.0),
                update_time_constant=update_time_constant,
                silence_time_constant=silence_time_constant,
            )
        )
    return voices
