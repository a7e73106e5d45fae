import numpy as np
import pytest

from faceeraser.pose_feed import Keypoint
from faceeraser.session import SessionContext
from faceeraser.display import start_button_rect

VIEWPORT = (800, 600)


def nose_pose(x, y, confidence=0.9):
    """A pose with only a nose keypoint followed by a low-confidence eye."""
    return [Keypoint(x, y, confidence), Keypoint(x + 5, y - 5, 0.1)]


def press_start(controller, viewport=VIEWPORT):
    bx, by, bw, bh = start_button_rect(*viewport)
    return controller.pointer(bx + bw / 2, by + bh / 2, viewport)


@pytest.fixture
def context():
    return SessionContext()


@pytest.fixture
def running_context():
    context = SessionContext()
    context.controller.capture_opened()
    context.controller.detector_ready()
    press_start(context.controller)
    assert context.controller.is_running
    return context


@pytest.fixture
def frame():
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, size=(480, 640, 3), dtype=np.uint8)
