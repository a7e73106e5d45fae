"""Pose detection with MediaPipe's PoseLandmarker, delivering into a PoseFeed."""

import logging
import threading
import time
import urllib.request
from pathlib import Path
from typing import Callable, Optional

import cv2
import mediapipe as mp

from faceeraser.pose_feed import PoseFeed, poses_from_landmarks
from faceeraser.util import (
    DFLT_MODEL_DIR,
    DFLT_POSE_MODEL_TYPE,
    DFLT_N_SLOTS,
    POSE_MODEL_URL_TEMPLATE,
    return_none,
)

logger = logging.getLogger(__name__)


def get_pose_model_path(model_type=DFLT_POSE_MODEL_TYPE, model_dir=DFLT_MODEL_DIR):
    """Return the path to the pose landmarker model, downloading it if needed."""
    model_dir = Path(model_dir)
    model_dir.mkdir(parents=True, exist_ok=True)
    model_path = model_dir / f"pose_landmarker_{model_type}.task"
    if not model_path.exists():
        url = POSE_MODEL_URL_TEMPLATE.format(model_type=model_type)
        logger.info("Downloading pose landmarker model from %s", url)
        urllib.request.urlretrieve(url, model_path)
    return str(model_path)


class PoseDetector:
    """
    Runs MediaPipe's PoseLandmarker in live stream mode.

    The model is loaded on a background thread (so the display keeps running while
    it loads), after which `on_ready` is called. Frames sent with `detect` are
    processed asynchronously, and every result batch replaces the feed's previous one.

    Attributes:
        feed (PoseFeed): Where detected poses are pushed.
        max_poses (int): Maximum number of people to detect.
        flipped (bool): Mirror frames before detection, so that keypoints are in the
            same (mirrored) space as what's displayed.
    """

    def __init__(
        self,
        feed: PoseFeed,
        *,
        model_path: Optional[str] = None,
        max_poses: int = DFLT_N_SLOTS,
        flipped: bool = True,
        detection_con: float = 0.5,
        track_con: float = 0.5,
        on_ready: Callable = return_none,
    ):
        self.feed = feed
        self.model_path = model_path
        self.max_poses = max_poses
        self.flipped = flipped
        self.detection_con = detection_con
        self.track_con = track_con
        self.on_ready = on_ready

        self._landmarker = None
        self._last_timestamp_ms = -1
        self._frame_size = None
        self._loader = None
        self._closed = False
        self._lock = threading.Lock()

    def start(self) -> 'PoseDetector':
        """Start loading the model in the background."""
        if self._loader is None:
            self._loader = threading.Thread(
                target=self._load, name='pose-model-loader', daemon=True
            )
            self._loader.start()
        return self

    def _load(self):
        try:
            model_path = self.model_path or get_pose_model_path()
            options = mp.tasks.vision.PoseLandmarkerOptions(
                base_options=mp.tasks.BaseOptions(model_asset_path=model_path),
                running_mode=mp.tasks.vision.RunningMode.LIVE_STREAM,
                num_poses=self.max_poses,
                min_pose_detection_confidence=self.detection_con,
                min_pose_presence_confidence=self.detection_con,
                min_tracking_confidence=self.track_con,
                result_callback=self._on_result,
            )
            landmarker = mp.tasks.vision.PoseLandmarker.create_from_options(options)
        except (OSError, RuntimeError, ValueError):
            # The session stays in its loading state
            logger.exception("Could not load the pose landmarker model")
            return
        with self._lock:
            closed_while_loading = self._closed
            if not closed_while_loading:
                self._landmarker = landmarker
        if closed_while_loading:
            landmarker.close()
            return
        logger.info("Pose landmarker loaded from %s", model_path)
        self.on_ready()

    def _on_result(self, result, output_image, timestamp_ms: int):
        width, height = self._frame_size
        self.feed.push(
            poses_from_landmarks(
                result.pose_landmarks, width, height, max_poses=self.max_poses
            )
        )

    def detect(self, img, timestamp_ms: Optional[int] = None) -> bool:
        """
        Send a BGR frame for detection. Never blocks; returns False if the frame
        was not sent (model not loaded yet, or a stale timestamp).
        """
        landmarker = self._landmarker
        if landmarker is None:
            return False
        if timestamp_ms is None:
            timestamp_ms = int(time.monotonic() * 1000)
        if timestamp_ms <= self._last_timestamp_ms:
            return False
        self._last_timestamp_ms = timestamp_ms

        if self.flipped:
            img = cv2.flip(img, 1)
        height, width = img.shape[:2]
        self._frame_size = (width, height)
        mp_image = mp.Image(
            image_format=mp.ImageFormat.SRGB, data=cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
        )
        landmarker.detect_async(mp_image, timestamp_ms)
        return True

    def close(self):
        with self._lock:
            self._closed = True
            landmarker, self._landmarker = self._landmarker, None
        if landmarker is not None:
            landmarker.close()

    def __enter__(self):
        return self.start()

    def __exit__(self, *exc_info):
        self.close()
