"""Nose motion tracking, and the mapping from motion to sound knobs."""

from typing import Dict, Optional, Tuple

from faceeraser.util import (
    DFLT_MIN_SPEED,
    DFLT_SPEED_TO_VOLUME_SCALE,
    DFLT_MAX_VOLUME,
    DFLT_MIN_FREQ,
    DFLT_MAX_FREQ,
    DFLT_PITCH_SPEED_GAIN,
    DFLT_VIDEO_HEIGHT,
    clamp,
    distance,
    lerp,
)

Point = Tuple[float, float]

# -------------------------------------------------------------------------------
# Motion tracking
# -------------------------------------------------------------------------------


class MotionTracker:
    """
    Turns consecutive nose positions of one slot into a frame-to-frame speed.

    The previous position is forgotten as soon as a frame comes without a usable
    nose, so a reacquired nose always starts at speed 0 (the gap is never read as
    motion).

    >>> tracker = MotionTracker()
    >>> tracker.update((320, 240))
    0.0
    >>> tracker.update((330, 240))
    10.0
    >>> tracker.update(None) is None
    True
    >>> tracker.update((400, 100))
    0.0
    """

    def __init__(self):
        self.previous: Optional[Point] = None

    def update(self, nose) -> Optional[float]:
        """
        Feed the slot's nose position for this frame (None if there's no usable pose).

        Returns the speed, in pixels per frame, or None, which is the signal to
        silence the slot.
        """
        if nose is None:
            self.previous = None
            return None
        position = (float(nose[0]), float(nose[1]))
        if self.previous is None:
            speed = 0.0
        else:
            speed = distance(position, self.previous)
        self.previous = position
        return speed


# -------------------------------------------------------------------------------
# Knob (control parameter) functions
# -------------------------------------------------------------------------------


def active_speed(speed: float, min_speed: float = DFLT_MIN_SPEED) -> float:
    """
    The part of the speed above the dead zone (which swallows tracking jitter).

    >>> active_speed(10)
    7.0
    >>> active_speed(2.5)
    0.0
    """
    return float(max(0.0, speed - min_speed))


def volume_from_speed(
    speed: float,
    *,
    min_speed: float = DFLT_MIN_SPEED,
    speed_to_volume_scale: float = DFLT_SPEED_TO_VOLUME_SCALE,
    max_volume: float = DFLT_MAX_VOLUME,
) -> float:
    """
    Silent inside the dead zone, then louder with speed, up to max_volume.

    >>> volume_from_speed(10)
    0.5
    >>> volume_from_speed(5)
    0.2
    >>> volume_from_speed(3)
    0.0
    >>> volume_from_speed(10, max_volume=0.0)
    0.0
    """
    volume = active_speed(speed, min_speed) / speed_to_volume_scale
    return float(clamp(volume, 0.0, max_volume))


def freq_from_height(
    nose_y: float,
    *,
    video_height: float = DFLT_VIDEO_HEIGHT,
    min_freq: float = DFLT_MIN_FREQ,
    max_freq: float = DFLT_MAX_FREQ,
) -> float:
    """
    Higher at the top of the frame, lower at the bottom.

    >>> freq_from_height(0)
    1600.0
    >>> freq_from_height(480)
    400.0
    >>> freq_from_height(240)
    1000.0
    """
    y_factor = 1 - (nose_y / video_height)
    return lerp(min_freq, max_freq, y_factor)


def nose_knobs(
    speed: float,
    nose_y: float,
    *,
    video_height: float = DFLT_VIDEO_HEIGHT,
    min_speed: float = DFLT_MIN_SPEED,
    speed_to_volume_scale: float = DFLT_SPEED_TO_VOLUME_SCALE,
    max_volume: float = DFLT_MAX_VOLUME,
    min_freq: float = DFLT_MIN_FREQ,
    max_freq: float = DFLT_MAX_FREQ,
    pitch_speed_gain: float = DFLT_PITCH_SPEED_GAIN,
) -> Dict[str, float]:
    """
    Maps a nose's speed and height to the 'freq' and 'volume' of its voice.
    Moving faster makes the voice both louder and squeakier.

    Args:
        speed (float): Nose speed, in pixels per frame.
        nose_y (float): Nose height, in video pixels (0 is the top).
        video_height (float): Height of the video the nose was found in.

    Returns:
        Dict[str, float]: Dictionary with 'freq', 'volume' keys.

    >>> nose_knobs(10, 240)
    {'freq': 1175.0, 'volume': 0.5}
    >>> nose_knobs(0, 0)
    {'freq': 1600.0, 'volume': 0.0}
    """
    _active_speed = active_speed(speed, min_speed)
    knobs = {}
    knobs['freq'] = (
        freq_from_height(
            nose_y, video_height=video_height, min_freq=min_freq, max_freq=max_freq
        )
        + _active_speed * pitch_speed_gain
    )
    knobs['volume'] = volume_from_speed(
        speed,
        min_speed=min_speed,
        speed_to_volume_scale=speed_to_volume_scale,
        max_volume=max_volume,
    )
    return {k: float(v) for k, v in knobs.items()}
