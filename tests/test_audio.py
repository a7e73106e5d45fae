import math

import pytest

from faceeraser.audio import AudioVoice, NullTone, make_voices

FRAME_DT = 1 / 60


def test_new_voice_is_silent_at_its_base_freq():
    voice = AudioVoice(900)
    assert voice.current_volume == voice.target_volume == 0.0
    assert voice.current_freq == voice.target_freq == 900.0


def test_set_target_does_not_jump():
    voice = AudioVoice(900)
    voice.set_target(1200, 0.5)
    assert voice.target_freq == 1200
    assert voice.target_volume == 0.5
    assert voice.current_freq == 900
    assert voice.current_volume == 0.0
    voice.tick(FRAME_DT)
    assert 900 < voice.current_freq < 1200
    assert 0 < voice.current_volume < 0.5


def test_tick_is_exponential_smoothing():
    voice = AudioVoice(900, update_time_constant=0.04)
    voice.set_target(900, 0.5)
    voice.tick(0.04)
    assert voice.current_volume == pytest.approx(0.5 * (1 - math.exp(-1)))


def test_zero_dt_changes_nothing():
    voice = AudioVoice(900)
    voice.set_target(1000, 0.5)
    voice.tick(0)
    assert voice.current_volume == 0.0


def test_silence_converges_without_jumping():
    voice = AudioVoice(900)
    voice.set_target(1000, 0.5)
    for _ in range(30):
        voice.tick(FRAME_DT)
    assert voice.current_volume == pytest.approx(0.5, abs=1e-3)

    volumes = []
    for _ in range(30):  # half a second, ten silence time constants
        voice.silence()
        voice.tick(FRAME_DT)
        volumes.append(voice.current_volume)

    # never instantly zero
    assert volumes[0] > 0.25
    assert all(v > 0 for v in volumes)
    # always decreasing, toward 0
    assert all(later < earlier for earlier, later in zip(volumes, volumes[1:]))
    assert volumes[-1] < 1e-3


def test_silence_keeps_the_frequency_target():
    voice = AudioVoice(900)
    voice.set_target(1234, 0.3)
    voice.silence()
    assert voice.target_freq == 1234
    assert voice.target_volume == 0.0


def test_silence_uses_its_own_time_constant():
    voice = AudioVoice(900, update_time_constant=0.04, silence_time_constant=0.05)
    voice.set_target(1000, 0.5)
    assert voice.tone.time_constant == 0.04
    voice.silence()
    assert voice.tone.time_constant == 0.05
    # frequency is untouched on the tone too
    assert voice.tone.freq == 1000
    assert voice.tone.volume == 0.0


def test_targets_are_forwarded_to_the_tone():
    tone = NullTone(900)
    voice = AudioVoice(900, tone=tone)
    voice.set_target(1100, 0.25)
    assert (tone.freq, tone.volume, tone.n_updates) == (1100, 0.25, 1)
    voice.stop()
    assert tone.stopped


def test_make_voices_are_detuned_and_independent():
    voices = make_voices(2, base_freq=900, detune=120)
    assert [v.base_freq for v in voices] == [900, 1020]
    assert voices[0].tone is not voices[1].tone
    voices[0].set_target(1500, 0.5)
    voices[0].tick(FRAME_DT)
    assert voices[1].state() == {
        'current_freq': 1020.0,
        'current_volume': 0.0,
        'target_freq': 1020.0,
        'target_volume': 0.0,
    }


def test_make_voices_uses_the_tone_factory():
    created = []

    def tone_factory(freq, volume):
        created.append(freq)
        return NullTone(freq, volume)

    make_voices(2, tone_factory=tone_factory)
    assert created == [900, 1020]


@pytest.mark.parametrize(
    'kwargs', [dict(update_time_constant=-1), dict(silence_time_constant=0)]
)
def test_non_positive_time_constants_are_refused(kwargs):
    with pytest.raises(ValueError):
        AudioVoice(900, **kwargs)


@pytest.mark.parametrize('time_constant', [0, -0.01])
def test_set_target_refuses_non_positive_time_constants(time_constant):
    voice = AudioVoice(900)
    with pytest.raises(ValueError):
        voice.set_target(1000, 0.5, time_constant=time_constant)
    # nothing was changed
    assert voice.target_volume == 0.0
    assert voice.tone.n_updates == 0


def test_silence_refuses_a_zero_time_constant():
    voice = AudioVoice(900)
    with pytest.raises(ValueError):
        voice.silence(time_constant=0)


def test_explicit_time_constant_reaches_the_tone():
    voice = AudioVoice(900)
    voice.set_target(1000, 0.5, time_constant=0.2)
    assert voice.tone.time_constant == 0.2
    voice.tick(0.2)
    assert voice.current_volume == pytest.approx(0.5 * (1 - math.exp(-1)))
