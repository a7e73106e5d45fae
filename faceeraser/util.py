"""Utils and defaults for faceeraser."""

import json
import math
from pathlib import Path

pkg_name = 'faceeraser'


def return_none(*args, **kwargs):
    """
    An empty function that returns None no matter the arguments.
    Often used as a "do nothing" general callback function.
    """
    return None


# --------------------------------------------------------------------------------------
# Constants


class PoseLandmark:
    """Indices of the landmarks we care about, in the detector's output ordering."""

    NOSE = 0


# Video
DFLT_VIDEO_WIDTH = 640
DFLT_VIDEO_HEIGHT = 480

# Detection
DFLT_N_SLOTS = 2
DFLT_CONFIDENCE_THRESHOLD = 0.3
DFLT_MODEL_DIR = Path('~/.cache').expanduser() / pkg_name
DFLT_POSE_MODEL_TYPE = 'lite'
POSE_MODEL_URL_TEMPLATE = (
    'https://storage.googleapis.com/mediapipe-models/pose_landmarker/'
    'pose_landmarker_{model_type}/float16/latest/pose_landmarker_{model_type}.task'
)

# Mask
DFLT_ERASER_SIZE = 40  # diameter, in video pixels
DFLT_MASK_GRAY = 120

# Motion to sound
DFLT_MIN_SPEED = 3.0  # dead zone, in pixels per frame
DFLT_SPEED_TO_VOLUME_SCALE = 10.0
DFLT_MAX_VOLUME = 0.5
DFLT_MIN_FREQ = 400.0
DFLT_MAX_FREQ = 1600.0
DFLT_PITCH_SPEED_GAIN = 25.0

# Voices
DFLT_BASE_FREQ = 900.0
DFLT_VOICE_DETUNE = 120.0
DFLT_UPDATE_TIME_CONSTANT = 0.04
DFLT_SILENCE_TIME_CONSTANT = 0.05

# Start button
DFLT_BUTTON_SIZE = (200, 54)
DFLT_BUTTON_Y_OFFSET = 20


# --------------------------------------------------------------------------------------
# Math utils


def clamp(value, low, high):
    """
    Clamp value to the [low, high] interval.

    >>> clamp(0.7, 0, 0.5)
    0.5
    >>> clamp(-1, 0, 0.5)
    0
    """
    return max(low, min(high, value))


def lerp(start, stop, amount):
    """
    Linear interpolation from start (amount=0) to stop (amount=1).

    >>> lerp(400, 1600, 0.5)
    1000.0
    """
    return start + (stop - start) * float(amount)


def distance(point1, point2):
    """
    Euclidean distance between two 2D points.

    >>> distance((320, 240), (330, 240))
    10.0
    """
    return math.hypot(point1[0] - point2[0], point1[1] - point2[1])


def smoothing_factor(dt, time_constant):
    """
    Fraction of the remaining gap closed after `dt` seconds of exponential
    smoothing with the given time constant.

    >>> smoothing_factor(0, 0.04)
    0.0
    >>> round(smoothing_factor(0.04, 0.04), 4)
    0.6321
    """
    if time_constant <= 0:
        raise ValueError(f"time_constant must be positive, got {time_constant}")
    return 1.0 - math.exp(-max(dt, 0.0) / time_constant)


# --------------------------------------------------------------------------------------
# String utils


def format_dict_values(d, ndigits=2):
    """
    Round the float values of a dict, for display and logging.

    >>> format_dict_values({'freq': 1234.5678, 'slot': 1})
    {'freq': 1234.57, 'slot': 1}
    """
    return {k: round(v, ndigits) if isinstance(v, float) else v for k, v in d.items()}


# --------------------------------------------------------------------------------------
# Logging utils


def print_json_if_possible(x):
    """Prints the input as json (when it's serializable) and adds a newline."""
    try:
        x = json.dumps(x)
    except TypeError:
        pass
    print(x)
    print()
