"""Session state: when processing and audio may begin, and the per-frame slot pipeline."""

import logging
import threading
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Callable, Dict, List, Optional

from faceeraser.audio import AudioVoice, NullTone, make_voices
from faceeraser.display import start_button_rect
from faceeraser.mask import MaskBuffer
from faceeraser.motion import MotionTracker, nose_knobs
from faceeraser.pose_feed import PoseFeed
from faceeraser.util import (
    DFLT_VIDEO_WIDTH,
    DFLT_VIDEO_HEIGHT,
    DFLT_N_SLOTS,
    DFLT_CONFIDENCE_THRESHOLD,
    DFLT_ERASER_SIZE,
    DFLT_MASK_GRAY,
    DFLT_MIN_SPEED,
    DFLT_SPEED_TO_VOLUME_SCALE,
    DFLT_MAX_VOLUME,
    DFLT_MIN_FREQ,
    DFLT_MAX_FREQ,
    DFLT_PITCH_SPEED_GAIN,
    DFLT_BASE_FREQ,
    DFLT_VOICE_DETUNE,
    DFLT_UPDATE_TIME_CONSTANT,
    DFLT_SILENCE_TIME_CONSTANT,
)

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------------------
# Settings
# -------------------------------------------------------------------------------


@dataclass(frozen=True)
class EraserSettings:
    """Everything tunable about a session. Defaults are the `DFLT_*` values of `util`."""

    video_width: int = DFLT_VIDEO_WIDTH
    video_height: int = DFLT_VIDEO_HEIGHT
    n_slots: int = DFLT_N_SLOTS
    confidence_threshold: float = DFLT_CONFIDENCE_THRESHOLD
    eraser_size: float = DFLT_ERASER_SIZE
    mask_gray: int = DFLT_MASK_GRAY
    min_speed: float = DFLT_MIN_SPEED
    speed_to_volume_scale: float = DFLT_SPEED_TO_VOLUME_SCALE
    max_volume: float = DFLT_MAX_VOLUME
    min_freq: float = DFLT_MIN_FREQ
    max_freq: float = DFLT_MAX_FREQ
    pitch_speed_gain: float = DFLT_PITCH_SPEED_GAIN
    base_freq: float = DFLT_BASE_FREQ
    voice_detune: float = DFLT_VOICE_DETUNE
    update_time_constant: float = DFLT_UPDATE_TIME_CONSTANT
    silence_time_constant: float = DFLT_SILENCE_TIME_CONSTANT

    def __post_init__(self):
        if self.video_width <= 0 or self.video_height <= 0:
            raise ValueError(
                f"Video size must be positive, got {self.video_width}x{self.video_height}"
            )
        if self.eraser_size <= 0:
            raise ValueError(f"eraser_size must be positive, got {self.eraser_size}")
        if self.speed_to_volume_scale <= 0:
            raise ValueError(
                f"speed_to_volume_scale must be positive, got {self.speed_to_volume_scale}"
            )
        if self.max_volume < 0:
            raise ValueError(f"max_volume can't be negative, got {self.max_volume}")
        if self.update_time_constant <= 0 or self.silence_time_constant <= 0:
            raise ValueError("Time constants must be positive")

    @property
    def eraser_radius(self) -> float:
        return self.eraser_size / 2

    def knob_kwargs(self) -> dict:
        """The keyword arguments `nose_knobs` takes."""
        return dict(
            video_height=self.video_height,
            min_speed=self.min_speed,
            speed_to_volume_scale=self.speed_to_volume_scale,
            max_volume=self.max_volume,
            min_freq=self.min_freq,
            max_freq=self.max_freq,
            pitch_speed_gain=self.pitch_speed_gain,
        )

    def as_dict(self) -> dict:
        return asdict(self)


# -------------------------------------------------------------------------------
# Session controller
# -------------------------------------------------------------------------------


class SessionState(Enum):
    NOT_STARTED = 'not_started'
    LOADING = 'loading'
    RUNNING = 'running'


class SessionController:
    """
    The NOT_STARTED -> LOADING -> RUNNING state machine. There's no way back.

    LOADING is entered when the video capture exists. RUNNING needs both the
    detector's ready signal and a pointer hit on the START button, in either order.
    The first such hit is the only moment `on_start` is called: that's where audio
    resources get created.

    >>> controller = SessionController()
    >>> controller.capture_opened()
    >>> controller.detector_ready()
    >>> controller.state
    <SessionState.LOADING: 'loading'>
    >>> controller.pointer(400, 340, (800, 600))
    True
    >>> controller.state
    <SessionState.RUNNING: 'running'>
    """

    def __init__(self, *, on_start: Optional[Callable] = None, button_rect=start_button_rect):
        self.state = SessionState.NOT_STARTED
        self.on_start = on_start
        self.button_rect = button_rect
        self.is_detector_ready = False
        self.is_started = False  # the START button was hit
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self.state is SessionState.RUNNING

    def _set_state(self, state: SessionState):
        logger.info("Session state: %s -> %s", self.state.value, state.value)
        self.state = state

    def _maybe_run(self):
        if (
            self.state is SessionState.LOADING
            and self.is_detector_ready
            and self.is_started
        ):
            self._set_state(SessionState.RUNNING)

    def capture_opened(self) -> None:
        with self._lock:
            if self.state is SessionState.NOT_STARTED:
                self._set_state(SessionState.LOADING)
            self._maybe_run()

    def detector_ready(self) -> None:
        """The pose estimator's ready signal. May come from another thread."""
        with self._lock:
            if not self.is_detector_ready:
                logger.info("Pose detector is ready")
            self.is_detector_ready = True
            self._maybe_run()

    def hits_button(self, x, y, viewport) -> bool:
        bx, by, bw, bh = self.button_rect(*viewport)
        return bx <= x <= bx + bw and by <= y <= by + bh

    def pointer(self, x, y, viewport) -> bool:
        """
        Handle a pointer press at (x, y) in viewport coordinates.
        Returns True iff this press is the one that started the session.
        """
        with self._lock:
            if self.is_started or not self.hits_button(x, y, viewport):
                return False
            if self.on_start is not None:
                self.on_start()
            self.is_started = True
            self._maybe_run()
            return True


# -------------------------------------------------------------------------------
# Session context
# -------------------------------------------------------------------------------


class SessionContext:
    """
    All of a session's state, in one place: the pose feed, the mask, one motion
    tracker and one voice per slot, and the controller gating them.

    Voices don't exist until the START button is hit (see `start_audio`). If a
    `synth` (a `faceeraser.synth.VoiceSynth`) is given, it's started then and the
    voices play on it. Otherwise their tones come from `tone_factory`.
    """

    def __init__(
        self,
        settings: Optional[EraserSettings] = None,
        *,
        tone_factory: Callable = NullTone,
        synth=None,
    ):
        self.settings = settings or EraserSettings()
        s = self.settings
        self.feed = PoseFeed(
            n_slots=s.n_slots, confidence_threshold=s.confidence_threshold
        )
        self.mask = MaskBuffer(s.video_width, s.video_height, gray=s.mask_gray)
        self.trackers = [MotionTracker() for _ in range(s.n_slots)]
        self.voices: List[AudioVoice] = []
        self.tone_factory = tone_factory
        self.synth = synth
        self.controller = SessionController(on_start=self.start_audio)

    def start_audio(self) -> None:
        """Create the audio resources. Only ever called from the START interaction."""
        if self.voices:
            return
        tone_factory = self.tone_factory
        if self.synth is not None:
            tone_factory = self.synth.start().tone
        s = self.settings
        self.voices = make_voices(
            s.n_slots,
            tone_factory=tone_factory,
            base_freq=s.base_freq,
            detune=s.voice_detune,
            update_time_constant=s.update_time_constant,
            silence_time_constant=s.silence_time_constant,
        )
        logger.info(
            "Created %d voices: %s Hz", len(self.voices), [v.base_freq for v in self.voices]
        )

    def step(self, dt: float) -> Dict[int, Optional[dict]]:
        """
        Run the per-slot pipeline for one frame, `dt` seconds after the previous one.

        For each slot with a usable nose: erase the mask there, and aim its voice at
        the knobs its motion gives. For each slot without: forget its last position
        and silence its voice. Nothing happens unless the session is running.

        Returns the per-slot features (None for silent slots), for logging.
        """
        if not self.controller.is_running:
            return {}
        s = self.settings
        features = {}
        for slot, tracker in enumerate(self.trackers):
            nose = self.feed.usable_nose(slot)
            speed = tracker.update(nose)
            voice = self.voices[slot] if slot < len(self.voices) else None
            if speed is None:
                if voice is not None:
                    voice.silence()
                features[slot] = None
            else:
                self.mask.erase(nose.x, nose.y, s.eraser_radius)
                knobs = nose_knobs(speed, nose.y, **s.knob_kwargs())
                if voice is not None:
                    voice.set_target(knobs['freq'], knobs['volume'])
                features[slot] = dict(
                    x=float(nose.x), y=float(nose.y), speed=speed, **knobs
                )
            if voice is not None:
                voice.tick(dt)
        return features

    def audio_state(self) -> Dict[int, dict]:
        return {slot: voice.state() for slot, voice in enumerate(self.voices)}

    def close(self) -> None:
        for voice in self.voices:
            voice.stop()
        if self.synth is not None:
            self.synth.stop()
