from types import SimpleNamespace

import pytest

from faceeraser.pose_feed import (
    Keypoint,
    PoseFeed,
    get_nose,
    is_usable,
    poses_from_landmarks,
)

from conftest import nose_pose


def test_empty_feed_has_no_poses():
    feed = PoseFeed()
    assert feed.pose(0) is None
    assert feed.pose(1) is None
    assert feed.usable_nose(0) is None
    assert len(feed) == 0


def test_latest_batch_wins():
    feed = PoseFeed()
    feed.push([nose_pose(10, 20), nose_pose(30, 40)])
    feed.push([nose_pose(50, 60)])
    assert feed.n_batches == 2
    assert len(feed) == 1
    assert feed.usable_nose(0) == Keypoint(50, 60, 0.9)
    # The second person of the older batch is gone
    assert feed.pose(1) is None


def test_empty_batch_clears_poses():
    feed = PoseFeed()
    feed.push([nose_pose(10, 20)])
    feed.push([])
    assert feed.pose(0) is None


def test_confidence_threshold_is_strict():
    feed = PoseFeed()
    feed.push([nose_pose(10, 20, confidence=0.3), nose_pose(30, 40, confidence=0.31)])
    assert feed.pose(0) is not None
    assert feed.usable_nose(0) is None
    assert feed.usable_nose(1) == Keypoint(30, 40, 0.31)


def test_custom_threshold():
    feed = PoseFeed(confidence_threshold=0.8)
    feed.push([nose_pose(10, 20, confidence=0.7)])
    assert feed.usable_nose(0) is None


def test_pose_without_keypoints_has_no_nose():
    feed = PoseFeed()
    feed.push([[]])
    assert get_nose(feed.pose(0)) is None
    assert feed.usable_nose(0) is None


def test_slot_out_of_range():
    feed = PoseFeed()
    with pytest.raises(IndexError):
        feed.pose(2)
    with pytest.raises(IndexError):
        feed.usable_nose(-1)


def test_extra_poses_beyond_slots_are_ignored():
    feed = PoseFeed()
    feed.push([nose_pose(1, 1), nose_pose(2, 2), nose_pose(3, 3)])
    assert feed.usable_nose(1).x == 2


def test_is_usable():
    assert is_usable(Keypoint(0, 0, 1.0))
    assert not is_usable(Keypoint(0, 0, 0.0))
    assert not is_usable(None)


def _landmark(x, y, visibility):
    return SimpleNamespace(x=x, y=y, z=0.0, visibility=visibility)


def test_poses_from_landmarks_scales_to_pixels():
    landmark_lists = [
        [_landmark(0.5, 0.25, 0.9), _landmark(0.1, 0.1, 0.2)],
        [_landmark(1.0, 1.0, 0.4)],
    ]
    poses = poses_from_landmarks(landmark_lists, 640, 480)
    assert len(poses) == 2
    assert poses[0][0] == Keypoint(320.0, 120.0, 0.9)
    assert poses[1][0] == Keypoint(640.0, 480.0, 0.4)


def test_poses_from_landmarks_keeps_detector_order_and_truncates():
    landmark_lists = [[_landmark(i / 10, 0.5, 0.9)] for i in range(4)]
    poses = poses_from_landmarks(landmark_lists, 100, 100, max_poses=2)
    assert [p[0].x for p in poses] == [0.0, 10.0]


def test_landmark_without_visibility_is_not_confident():
    landmark = SimpleNamespace(x=0.5, y=0.5, visibility=None)
    (pose,) = poses_from_landmarks([[landmark]], 640, 480)
    assert pose[0].confidence == 0.0
