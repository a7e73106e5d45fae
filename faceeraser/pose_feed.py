"""Latest-value mailbox for pose detections, and conversion from detector landmarks."""

import threading
from collections import namedtuple
from typing import Iterable, List, Optional, Sequence

from faceeraser.util import DFLT_CONFIDENCE_THRESHOLD, DFLT_N_SLOTS, PoseLandmark

# -------------------------------------------------------------------------------
# Types
# -------------------------------------------------------------------------------

Keypoint = namedtuple('Keypoint', 'x y confidence')
Keypoint.__doc__ = "A body landmark, in source-video pixel coordinates."

Pose = List[Keypoint]  # ordered as the detector outputs them (index 0 is the nose)


def get_nose(pose: Optional[Pose]) -> Optional[Keypoint]:
    """
    Return the nose keypoint of a pose, or None if there's no such keypoint.

    >>> get_nose([Keypoint(10, 20, 0.9), Keypoint(11, 30, 0.8)])
    Keypoint(x=10, y=20, confidence=0.9)
    >>> get_nose([]) is None
    True
    """
    if pose and len(pose) > PoseLandmark.NOSE:
        return pose[PoseLandmark.NOSE]
    return None


def is_usable(keypoint: Optional[Keypoint], threshold=DFLT_CONFIDENCE_THRESHOLD):
    """
    True iff the keypoint exists and its confidence is strictly above threshold.

    >>> is_usable(Keypoint(0, 0, 0.31))
    True
    >>> is_usable(Keypoint(0, 0, 0.3))
    False
    >>> is_usable(None)
    False
    """
    return keypoint is not None and keypoint.confidence > threshold


# -------------------------------------------------------------------------------
# Pose feed
# -------------------------------------------------------------------------------


class PoseFeed:
    """
    Holds the most recent detection batch pushed by the pose estimator.

    There's no queue: every push replaces the previous batch, and readers only ever
    see the latest one. Pushes usually come from the detector's own thread, so the
    swap is guarded by a lock.

    >>> feed = PoseFeed()
    >>> feed.pose(0) is None
    True
    >>> feed.push([[Keypoint(1, 2, 0.9)]])
    >>> feed.pose(0)
    [Keypoint(x=1, y=2, confidence=0.9)]
    >>> feed.pose(1) is None
    True
    """

    def __init__(
        self,
        *,
        n_slots: int = DFLT_N_SLOTS,
        confidence_threshold: float = DFLT_CONFIDENCE_THRESHOLD,
    ):
        self.n_slots = n_slots
        self.confidence_threshold = confidence_threshold
        self._poses: Sequence[Pose] = ()
        self._n_batches = 0
        self._lock = threading.Lock()

    def push(self, batch: Iterable[Pose]) -> None:
        """Replace the current batch with a new one (latest value wins)."""
        poses = tuple(batch)
        with self._lock:
            self._poses = poses
            self._n_batches += 1

    @property
    def n_batches(self) -> int:
        """Number of batches delivered so far."""
        return self._n_batches

    def _check_slot(self, slot):
        if not 0 <= slot < self.n_slots:
            raise IndexError(f"slot must be in [0, {self.n_slots}), got {slot}")

    def pose(self, slot: int) -> Optional[Pose]:
        """The current pose occupying `slot`, or None."""
        self._check_slot(slot)
        with self._lock:
            poses = self._poses
        if slot < len(poses):
            return poses[slot]
        return None

    def usable_nose(self, slot: int) -> Optional[Keypoint]:
        """
        The nose keypoint of the pose in `slot`, if confident enough.
        A low-confidence nose is treated exactly like no pose at all.
        """
        nose = get_nose(self.pose(slot))
        if is_usable(nose, self.confidence_threshold):
            return nose
        return None

    def __len__(self):
        with self._lock:
            return len(self._poses)


# -------------------------------------------------------------------------------
# Detector output conversion
# -------------------------------------------------------------------------------


def landmark_to_keypoint(landmark, width, height) -> Keypoint:
    """
    Convert a normalized landmark (x, y in [0, 1], with a visibility score) into a
    pixel-space Keypoint.
    """
    confidence = getattr(landmark, 'visibility', None)
    if confidence is None:
        confidence = 0.0
    return Keypoint(
        float(landmark.x) * width, float(landmark.y) * height, float(confidence)
    )


def poses_from_landmarks(landmark_lists, width, height, *, max_poses=DFLT_N_SLOTS):
    """
    Convert the detector's per-person normalized landmark lists into pixel-space
    poses, keeping the detector's ordering (which is what decides slots).
    """
    return [
        [landmark_to_keypoint(lm, width, height) for lm in landmarks]
        for landmarks in list(landmark_lists)[:max_poses]
    ]
