"""The sound: a two-voice pyo synth, driven through hum's Synth."""

import logging
from contextlib import ExitStack
from typing import Callable, Union

from hum import Synth
from hum.pyo_util import add_default_dials
from pyo import Port, Sine

from faceeraser.util import (
    DFLT_BASE_FREQ,
    DFLT_VOICE_DETUNE,
    DFLT_N_SLOTS,
    DFLT_UPDATE_TIME_CONSTANT,
)

logger = logging.getLogger(__name__)

DFLT_RECORDING_FILENAME = 'face_eraser_recording.wav'

# -------------------------------------------------------------------------------
# Synthesizer functions
# -------------------------------------------------------------------------------
# Each slot has three dials: freq_<slot>, volume_<slot> and glide_<slot>, the last
# being the time constant of the portamento toward the other two.


def _gliding_sine(freq, volume, glide, *, vibrato_rate=0, vibrato_depth=0):
    if vibrato_depth:
        freq = freq + Sine(freq=vibrato_rate, mul=vibrato_depth)
    smooth_freq = Port(freq, risetime=glide, falltime=glide)
    smooth_volume = Port(volume, risetime=glide, falltime=glide)
    return Sine(freq=smooth_freq, mul=smooth_volume)


@add_default_dials('freq_0 volume_0 glide_0 freq_1 volume_1 glide_1')
def sine_voices_synth(
    freq_0=DFLT_BASE_FREQ,
    volume_0=0.0,
    glide_0=DFLT_UPDATE_TIME_CONSTANT,
    freq_1=DFLT_BASE_FREQ + DFLT_VOICE_DETUNE,
    volume_1=0.0,
    glide_1=DFLT_UPDATE_TIME_CONSTANT,
):
    """Two plain sine voices, each gliding (exponential portamento) to its targets."""
    voice_0 = _gliding_sine(freq_0, volume_0, glide_0)
    voice_1 = _gliding_sine(freq_1, volume_1, glide_1)
    return voice_0 + voice_1


@add_default_dials('freq_0 volume_0 glide_0 freq_1 volume_1 glide_1')
def vibrato_voices_synth(
    freq_0=DFLT_BASE_FREQ,
    volume_0=0.0,
    glide_0=DFLT_UPDATE_TIME_CONSTANT,
    freq_1=DFLT_BASE_FREQ + DFLT_VOICE_DETUNE,
    volume_1=0.0,
    glide_1=DFLT_UPDATE_TIME_CONSTANT,
):
    """Like `sine_voices_synth`, with a theremin-like vibrato on each voice."""
    voice_0 = _gliding_sine(freq_0, volume_0, glide_0, vibrato_rate=5, vibrato_depth=5)
    voice_1 = _gliding_sine(freq_1, volume_1, glide_1, vibrato_rate=6, vibrato_depth=5)
    return voice_0 + voice_1


synth_funcs = {
    'sine': sine_voices_synth,
    'vibrato': vibrato_voices_synth,
}

DFLT_SYNTH_FUNC = 'sine'

# -------------------------------------------------------------------------------
# Tones and the synth they play on
# -------------------------------------------------------------------------------


def slot_knobs(slot: int, freq=None, volume=None, glide=None) -> dict:
    """
    The knob updates that set one slot's dials. Dials given as None are left alone.

    >>> slot_knobs(1, None, 0.0, 0.05)
    {'volume_1': 0.0, 'glide_1': 0.05}
    """
    knobs = {'freq': freq, 'volume': volume, 'glide': glide}
    return {f'{k}_{slot}': float(v) for k, v in knobs.items() if v is not None}


class SynthTone:
    """A tone generator that plays one slot of a running (hum) `Synth`."""

    def __init__(self, synth, slot: int):
        self.synth = synth
        self.slot = slot

    def set(self, freq, volume, time_constant):
        self.synth(**slot_knobs(self.slot, freq, volume, time_constant))

    def stop(self):
        self.synth(**slot_knobs(self.slot, volume=0.0))


class VoiceSynth:
    """
    Owns the `Synth` the voices play on: starts it (which boots the pyo server),
    hands out one `SynthTone` per slot, and, when stopped, renders the recorded
    knob events to a wav file if asked to.

    Nothing is created before `start`, which is meant to be called from a user
    interaction.
    """

    n_voices = DFLT_N_SLOTS

    def __init__(
        self,
        synth_func: Callable = sine_voices_synth,
        *,
        nchnls: int = 2,
        save_recording: Union[str, bool, None] = None,
        synth_factory: Callable = Synth,
    ):
        self.synth_func = synth_func
        self.nchnls = nchnls
        if save_recording is True:
            save_recording = DFLT_RECORDING_FILENAME
        self.save_recording = save_recording or None
        self.synth_factory = synth_factory
        self._synth = None
        self._exit_stack = ExitStack()
        self._n_tones = 0

    @property
    def is_running(self) -> bool:
        return self._synth is not None

    def start(self) -> 'VoiceSynth':
        if self._synth is not None:
            return self
        synth = self.synth_factory(self.synth_func, nchnls=self.nchnls)
        self._exit_stack.enter_context(synth)
        self._synth = synth
        self._n_tones = 0
        logger.info(
            "Synth started (%s): %s",
            getattr(self.synth_func, '__name__', self.synth_func),
            list(synth.knobs),
        )
        return self

    def tone(self, freq, volume) -> SynthTone:
        """The next slot's tone generator, set to (freq, volume) right away."""
        if self._synth is None:
            raise RuntimeError("The synth must be started before making tones")
        if self._n_tones >= self.n_voices:
            raise ValueError(f"The synth only has {self.n_voices} voices")
        tone = SynthTone(self._synth, self._n_tones)
        self._n_tones += 1
        tone.set(freq, volume, DFLT_UPDATE_TIME_CONSTANT)
        return tone

    def stop(self):
        if self._synth is None:
            return
        synth, self._synth = self._synth, None
        try:
            synth.stop_recording()
            recording = synth.get_recording()
            logger.info("Recorded %d control events", len(recording))
            if self.save_recording:
                synth.render_events(output_filepath=self.save_recording)
                logger.info("Saved audio recording to %s", self.save_recording)
        finally:
            self._exit_stack.close()

    def __enter__(self):
        return self.start()

    def __exit__(self, *exc_info):
        self.stop()
