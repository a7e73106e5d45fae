"""Utility functions for running the face eraser."""

import logging
import time
from typing import Any, Callable, Dict, Optional, TypeVar, Union

import argh
import cv2

from faceeraser.display import Compositor, draw_splash
from faceeraser.session import EraserSettings, SessionContext
from faceeraser.util import (
    format_dict_values,
    print_json_if_possible,
    return_none as do_nothing,
)

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------------------
# Object resolution
# -------------------------------------------------------------------------------

T = TypeVar('T')


def resolve_object(
    obj: Union[str, T],
    *,
    object_map: Dict[str, T],
    expected_type: type = None,
    error_message: str = None,
) -> T:
    """
    Resolves an object by either returning it directly if it's of the correct type,
    or looking it up in a mapping if it's a string.

    Args:
        obj: The object to resolve. Can be a string (to be looked up in object_map)
             or the object itself (if it's already of type T).
        object_map: A dictionary mapping strings to objects of type T.
        expected_type: (Optional) The expected type of the resolved object.
        error_message: (Optional) A custom error message to use if a ValueError
                       or TypeError is raised.

    Raises:
        TypeError: If obj is not a string or of the expected type.
        ValueError: If obj is a string but is not found in object_map.

    >>> resolve_object('a', object_map={'a': 1})
    1
    >>> resolve_object(2, object_map={'a': 1}, expected_type=int)
    2
    """
    if isinstance(obj, str):
        if obj in object_map:
            resolved_obj = object_map[obj]
        else:
            msg = error_message or (
                f"Unknown object identifier: {obj}. Choose from {sorted(object_map)}"
            )
            raise ValueError(msg)
    elif expected_type is None or isinstance(obj, expected_type):
        resolved_obj = obj
    else:
        msg = error_message or f"Expected type {expected_type}, got {type(obj)}"
        raise TypeError(msg)

    return resolved_obj


# -------------------------------------------------------------------------------
# Keyboard handling functions
# -------------------------------------------------------------------------------

ESCAPE_KEY_ASCII = 27
BREAK_KEYS = {ESCAPE_KEY_ASCII, ord('q')}


class KeyboardBreakSignal(Exception):
    """Exception raised when a break key is pressed."""


def read_keyboard(wait_time: int = 1) -> int:
    """Read keyboard input, waiting at most wait_time milliseconds. 255 if no key."""
    return cv2.waitKey(wait_time) & 0xFF


def keyboard_feature_vector(key_code: int) -> Dict[str, Any]:
    """
    Convert a key code into a feature vector with keyboard information.

    Raises:
        KeyboardBreakSignal: If a key that signals program termination is pressed

    >>> keyboard_feature_vector(255)['key_pressed']
    False
    """
    keyboard_fv = {
        'key_code': key_code,
        'key_pressed': 0 < key_code < 255,
        'is_escape': key_code == ESCAPE_KEY_ASCII,
        'timestamp': time.time(),
    }

    if keyboard_fv['key_code'] in BREAK_KEYS:
        raise KeyboardBreakSignal(f"Break key pressed: {key_code}")

    return keyboard_fv


# -------------------------------------------------------------------------------
# Camera and window handling functions
# -------------------------------------------------------------------------------


class CameraReadError(Exception):
    """Exception raised when camera read fails."""


def open_camera(camera_index: int, width: int, height: int) -> cv2.VideoCapture:
    cap = cv2.VideoCapture(camera_index)
    cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
    return cap


def read_camera(cap: cv2.VideoCapture, size=None) -> Any:
    """
    Read a frame from the camera, resized to `size` (width, height) if the camera
    didn't honor the requested resolution.

    Raises:
        CameraReadError: If the camera read operation fails
    """
    success, img = cap.read()
    if not success:
        raise CameraReadError("Failed to read from camera")
    if size is not None and (img.shape[1], img.shape[0]) != tuple(size):
        img = cv2.resize(img, tuple(size))
    return img


def window_viewport(window_name: str, default=None):
    """The (width, height) of the window's drawing area, or default if unknown."""
    try:
        _, _, width, height = cv2.getWindowImageRect(window_name)
    except cv2.error:
        return default
    if width <= 0 or height <= 0:
        return default
    return (width, height)


def window_was_closed(window_name: str) -> bool:
    try:
        return cv2.getWindowProperty(window_name, cv2.WND_PROP_VISIBLE) < 1
    except cv2.error:
        return True


# -------------------------------------------------------------------------------
# Main run function
# -------------------------------------------------------------------------------

DFLT_SYNTH = 'sine'
DFLT_WINDOW_NAME = 'Face Eraser'
DFLT_VIEWPORT = (1280, 960)


def run_face_eraser(
    *,
    settings: Optional[EraserSettings] = None,
    camera_index: int = 0,
    model_path: Optional[str] = None,
    synth: Union[str, Callable] = DFLT_SYNTH,
    no_sound: bool = False,
    log_pose_features: Optional[Callable] = None,
    log_audio_features: Optional[Callable] = None,
    save_recording: Union[str, bool] = False,
    window_name: str = DFLT_WINDOW_NAME,
    viewport=DFLT_VIEWPORT,
):
    """
    Run the face eraser: a mask over the mirrored camera feed that tracked noses
    erase, each nose also driving a squeaky voice.

    Args:
        settings: Session settings (defaults to `EraserSettings()`)
        camera_index: Index of the camera to capture from
        model_path: Pose landmarker model file (downloaded if not given)
        synth: Synth function, or its name (see `faceeraser.synth.synth_funcs`)
        no_sound: Don't make any sound (no pyo server at all)
        log_pose_features: Function to log per-slot pose features (or None to disable)
        log_audio_features: Function to log voice states (or None to disable)
        save_recording: Filename to save the audio to, True for default name, or False
        window_name: Title for the display window
        viewport: Initial (width, height) of the window
    """
    # Import here so the rest of the package doesn't need mediapipe
    from faceeraser.detection import PoseDetector

    settings = settings or EraserSettings()
    log_pose_features = log_pose_features or do_nothing
    log_audio_features = log_audio_features or do_nothing

    voice_synth = None
    if not no_sound:
        # Import here so the rest of the package doesn't need an audio stack
        from faceeraser.synth import VoiceSynth, synth_funcs

        synth_func = resolve_object(
            synth, object_map=synth_funcs, expected_type=Callable
        )
        voice_synth = VoiceSynth(synth_func, save_recording=save_recording)
    context = SessionContext(settings, synth=voice_synth)
    controller = context.controller
    detector = PoseDetector(
        context.feed,
        model_path=model_path,
        max_poses=settings.n_slots,
        on_ready=controller.detector_ready,
    )
    compositor = Compositor()
    video_size = (settings.video_width, settings.video_height)

    cap = open_camera(camera_index, *video_size)
    if not cap.isOpened():
        logger.error("Could not open video capture device %s", camera_index)
        return
    controller.capture_opened()

    cv2.namedWindow(window_name, cv2.WINDOW_NORMAL)
    cv2.resizeWindow(window_name, *viewport)
    current_viewport = [tuple(viewport)]

    def on_mouse(event, x, y, flags, param):
        if event == cv2.EVENT_LBUTTONDOWN:
            controller.pointer(x, y, current_viewport[0])

    cv2.setMouseCallback(window_name, on_mouse)

    frame_count = 0
    last_time = time.monotonic()
    detector.start()
    try:
        while cap.isOpened():
            try:
                keyboard_feature_vector(read_keyboard())
                if window_was_closed(window_name):
                    break
                current_viewport[0] = window_viewport(
                    window_name, default=current_viewport[0]
                )

                img = read_camera(cap, video_size)
                detector.detect(img)

                now = time.monotonic()
                pose_features = context.step(now - last_time)
                last_time = now

                if controller.is_running:
                    log_pose_features(
                        {
                            slot: f and format_dict_values(f)
                            for slot, f in pose_features.items()
                        }
                    )
                    log_audio_features(
                        {
                            slot: format_dict_values(state)
                            for slot, state in context.audio_state().items()
                        }
                    )

                if controller.is_started:
                    out = compositor.render(
                        img,
                        context.mask,
                        current_viewport[0],
                        loading=not controller.is_running,
                    )
                else:
                    out = draw_splash(
                        current_viewport[0],
                        detector_ready=controller.is_detector_ready,
                        frame_count=frame_count,
                    )
                cv2.imshow(window_name, out)
                frame_count += 1

            except (CameraReadError, KeyboardBreakSignal) as e:
                logger.info("Stopping: %s", e)
                break
    finally:
        logger.info(
            "Session over after %d frames, %.1f%% of the mask erased",
            frame_count,
            100 * (1 - context.mask.coverage()),
        )
        context.close()
        detector.close()
        cap.release()
        cv2.destroyAllWindows()


def face_eraser_cli(
    # Capture options
    camera_index: int = 0,
    model_path: str = None,
    # Sound options
    synth: str = DFLT_SYNTH,
    no_sound: bool = False,
    save_recording: str = None,
    # Logging options
    log_pose_features: bool = False,
    log_audio_features: bool = False,
    verbose: bool = False,
    # Display options
    window_name: str = DFLT_WINDOW_NAME,
    # Tuning options
    eraser_size: float = EraserSettings.eraser_size,
    confidence_threshold: float = EraserSettings.confidence_threshold,
    min_speed: float = EraserSettings.min_speed,
    # List available components
    list_synths: bool = False,
):
    """
    Run the face eraser with the specified parameters.

    Args:
        camera_index: Index of the camera to capture from
        model_path: Pose landmarker model file (downloaded if not given)
        synth: Name of the synth function
        no_sound: Don't make any sound
        save_recording: Filename to save the audio output to
        log_pose_features: Whether to log per-slot pose features
        log_audio_features: Whether to log voice states
        verbose: Log debug messages
        window_name: Title for the display window
        eraser_size: Diameter of the nose eraser, in video pixels
        confidence_threshold: Minimum nose confidence for a pose to count
        min_speed: Nose speed (pixels per frame) below which there's no sound
        list_synths: List available synth functions and exit
    """
    if list_synths:
        from faceeraser.synth import synth_funcs

        print("Available synth functions:")
        for name in sorted(synth_funcs):
            print(f"  - {name}")
        return

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s',
    )

    settings = EraserSettings(
        eraser_size=eraser_size,
        confidence_threshold=confidence_threshold,
        min_speed=min_speed,
    )

    run_face_eraser(
        settings=settings,
        camera_index=camera_index,
        model_path=model_path,
        synth=synth,
        no_sound=no_sound,
        log_pose_features=print_json_if_possible if log_pose_features else None,
        log_audio_features=print_json_if_possible if log_audio_features else None,
        save_recording=save_recording or False,
        window_name=window_name,
    )


def dispatched_face_eraser_cli():
    argh.dispatch_command(face_eraser_cli)
