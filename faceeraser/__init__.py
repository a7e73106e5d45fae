"""
Face eraser: use your nose to reveal the video.

A flat gray mask covers the (mirrored) camera feed. Up to two people are tracked,
and wherever their nose goes, the mask is erased, for good: the mask only ever loses
coverage. Each of the two tracked noses also drives its own squeaky sine voice: the
faster the nose moves, the louder (and higher) the voice, and the higher the nose is
in the frame, the higher the pitch. A still nose is silent.

People are assigned to the two "slots" in the order the pose detector lists them,
not by identity, so if two people cross paths, their voices may swap.

Here's a bit about what's in here:

* util.py: defaults (all the `DFLT_*` constants), and small math and logging helpers.
* pose_feed.py: `PoseFeed`, the latest-value mailbox the pose detector delivers to.
* detection.py: `PoseDetector`, MediaPipe's PoseLandmarker, in live stream mode.
* mask.py: `MaskBuffer`, the erase-only alpha mask.
* motion.py: `MotionTracker` (nose speed per slot) and `nose_knobs` (speed and
    height to freq and volume).
* audio.py: `AudioVoice` (targets, and current values gliding toward them) and
    `make_voices`.
* synth.py: the two-voice pyo synth functions, played through hum's `Synth` by
    `VoiceSynth`, one `SynthTone` per slot.
* display.py: `Compositor` (cover-fit, mirrored video plus mask) and the splash screen.
* session.py: `SessionController` (NOT_STARTED -> LOADING -> RUNNING) and
    `SessionContext`, which holds everything and runs the per-frame pipeline.
* script_utils.py: the run loop and the command line interface.

"""

from faceeraser.pose_feed import Keypoint, PoseFeed
from faceeraser.mask import MaskBuffer
from faceeraser.motion import MotionTracker, nose_knobs
from faceeraser.audio import AudioVoice, make_voices
from faceeraser.display import Compositor, cover_fit
from faceeraser.session import (
    EraserSettings,
    SessionContext,
    SessionController,
    SessionState,
)
