import logging
from types import SimpleNamespace

import numpy as np
import pytest

pytest.importorskip('mediapipe')

from faceeraser import detection
from faceeraser.detection import PoseDetector
from faceeraser.pose_feed import Keypoint, PoseFeed
from faceeraser.session import SessionController, SessionState

from conftest import VIEWPORT, press_start


class FakeLandmarker:
    def __init__(self, options):
        self.options = options
        self.calls = []
        self.closed = False

    def detect_async(self, image, timestamp_ms):
        self.calls.append((image, timestamp_ms))

    def close(self):
        self.closed = True


def fake_mediapipe(create_from_options=FakeLandmarker):
    vision = SimpleNamespace(
        PoseLandmarkerOptions=lambda **kwargs: kwargs,
        RunningMode=SimpleNamespace(LIVE_STREAM='live_stream'),
        PoseLandmarker=SimpleNamespace(create_from_options=create_from_options),
    )
    return SimpleNamespace(
        tasks=SimpleNamespace(BaseOptions=lambda **kwargs: kwargs, vision=vision),
        Image=lambda image_format, data: SimpleNamespace(
            image_format=image_format, data=data
        ),
        ImageFormat=SimpleNamespace(SRGB='srgb'),
    )


class ReadyCounter:
    def __init__(self):
        self.n_calls = 0

    def __call__(self):
        self.n_calls += 1


@pytest.fixture
def fake_mp(monkeypatch):
    mp = fake_mediapipe()
    monkeypatch.setattr(detection, 'mp', mp)
    return mp


@pytest.fixture
def loaded_detector(fake_mp):
    on_ready = ReadyCounter()
    detector = PoseDetector(PoseFeed(), model_path='pose.task', on_ready=on_ready)
    detector._load()
    assert on_ready.n_calls == 1
    return detector


def test_detect_is_refused_before_the_model_is_loaded(fake_mp):
    detector = PoseDetector(PoseFeed(), model_path='pose.task')
    assert not detector.detect(np.zeros((480, 640, 3), dtype=np.uint8), 1)


def test_load_configures_live_stream(loaded_detector):
    options = loaded_detector._landmarker.options
    assert options['running_mode'] == 'live_stream'
    assert options['num_poses'] == 2
    assert options['base_options'] == {'model_asset_path': 'pose.task'}
    assert options['result_callback'] == loaded_detector._on_result


def test_loading_in_the_background(fake_mp):
    on_ready = ReadyCounter()
    detector = PoseDetector(PoseFeed(), model_path='pose.task', on_ready=on_ready)
    detector.start()
    detector._loader.join(timeout=5)
    assert on_ready.n_calls == 1
    assert detector.detect(np.zeros((480, 640, 3), dtype=np.uint8), 1)


def test_stale_and_duplicate_timestamps_are_dropped(loaded_detector):
    img = np.zeros((480, 640, 3), dtype=np.uint8)
    assert loaded_detector.detect(img, 10)
    assert not loaded_detector.detect(img, 10)
    assert not loaded_detector.detect(img, 5)
    assert loaded_detector.detect(img, 11)
    timestamps = [ts for _, ts in loaded_detector._landmarker.calls]
    assert timestamps == [10, 11]


def test_frames_are_mirrored_and_sent_as_rgb(loaded_detector):
    img = np.zeros((480, 640, 3), dtype=np.uint8)
    img[:, 0] = (255, 0, 0)  # blue, in BGR, on the left edge
    loaded_detector.detect(img, 1)
    sent, _ = loaded_detector._landmarker.calls[-1]
    assert sent.image_format == 'srgb'
    # now on the right edge, and blue in RGB
    assert tuple(sent.data[0, -1]) == (0, 0, 255)
    assert tuple(sent.data[0, 0]) == (0, 0, 0)


def test_frames_are_sent_as_is_when_not_flipped(fake_mp):
    detector = PoseDetector(PoseFeed(), model_path='pose.task', flipped=False)
    detector._load()
    img = np.zeros((480, 640, 3), dtype=np.uint8)
    img[:, 0] = (255, 0, 0)
    detector.detect(img, 1)
    sent, _ = detector._landmarker.calls[-1]
    assert tuple(sent.data[0, 0]) == (0, 0, 255)


def landmark(x, y, visibility):
    return SimpleNamespace(x=x, y=y, visibility=visibility)


def test_results_are_pushed_to_the_feed_in_pixels(loaded_detector):
    loaded_detector.detect(np.zeros((480, 640, 3), dtype=np.uint8), 1)
    result = SimpleNamespace(
        pose_landmarks=[
            [landmark(0.5, 0.25, 0.9)],
            [landmark(0.1, 0.5, 0.2)],
        ]
    )
    loaded_detector._on_result(result, None, 1)
    feed = loaded_detector.feed
    assert feed.n_batches == 1
    assert feed.pose(0)[0] == Keypoint(320, 120, 0.9)
    assert feed.usable_nose(0) == Keypoint(320, 120, 0.9)
    # below the confidence threshold
    assert feed.usable_nose(1) is None


def test_a_failed_load_is_logged_and_never_ready(monkeypatch, caplog):
    def create_from_options(options):
        raise RuntimeError("Unable to open the model file")

    monkeypatch.setattr(detection, 'mp', fake_mediapipe(create_from_options))
    controller = SessionController()
    controller.capture_opened()
    detector = PoseDetector(
        PoseFeed(), model_path='pose.task', on_ready=controller.detector_ready
    )
    with caplog.at_level(logging.ERROR, logger='faceeraser.detection'):
        detector._load()
    assert 'Could not load the pose landmarker model' in caplog.text
    assert not controller.is_detector_ready
    press_start(controller, VIEWPORT)
    assert controller.state is SessionState.LOADING
    assert not detector.detect(np.zeros((480, 640, 3), dtype=np.uint8), 1)


def test_close_during_load_closes_the_new_landmarker(monkeypatch):
    created = []
    on_ready = ReadyCounter()
    detector = PoseDetector(PoseFeed(), model_path='pose.task', on_ready=on_ready)

    def create_from_options(options):
        detector.close()  # the app is closed while the model loads
        landmarker = FakeLandmarker(options)
        created.append(landmarker)
        return landmarker

    monkeypatch.setattr(detection, 'mp', fake_mediapipe(create_from_options))
    detector._load()
    assert created[0].closed
    assert on_ready.n_calls == 0
    assert not detector.detect(np.zeros((480, 640, 3), dtype=np.uint8), 1)


def test_close_closes_the_landmarker(loaded_detector):
    landmarker = loaded_detector._landmarker
    loaded_detector.close()
    assert landmarker.closed
    assert not loaded_detector.detect(np.zeros((480, 640, 3), dtype=np.uint8), 1)
    loaded_detector.close()  # closing twice is fine
