"""Display: cover-fit compositing of the mirrored video and its mask, and the splash screen."""

import math
from collections import namedtuple
from typing import Tuple, Union

import cv2
import numpy as np

from faceeraser.mask import MaskBuffer
from faceeraser.util import DFLT_BUTTON_SIZE, DFLT_BUTTON_Y_OFFSET

# -------------------------------------------------------------------------------
# Types
# -------------------------------------------------------------------------------

Color = Union[Tuple[int, int, int], Tuple[int, int, int, int]]  # BGR or BGRA
Viewport = Tuple[int, int]  # (width, height)

CoverFit = namedtuple('CoverFit', 'scale width height x_offset y_offset')
CoverFit.__doc__ = "Scale, scaled size and centering offsets of a cover-fit layout."

DFLT_FONT = cv2.FONT_HERSHEY_SIMPLEX
DFLT_LOADING_TEXT = 'Loading model...'

# -------------------------------------------------------------------------------
# Geometry
# -------------------------------------------------------------------------------


def cover_fit(viewport_width, viewport_height, video_width, video_height) -> CoverFit:
    """
    Scale the video so it fills the viewport while keeping its aspect ratio,
    and center it. Negative offsets mean the overflow is cropped.

    >>> cover_fit(800, 600, 640, 480)
    CoverFit(scale=1.25, width=800.0, height=600.0, x_offset=0.0, y_offset=0.0)
    >>> cover_fit(1280, 480, 640, 480)
    CoverFit(scale=2.0, width=1280.0, height=960.0, x_offset=0.0, y_offset=-240.0)
    """
    if min(viewport_width, viewport_height, video_width, video_height) <= 0:
        raise ValueError(
            "Sizes must be positive, got viewport "
            f"{viewport_width}x{viewport_height} and video {video_width}x{video_height}"
        )
    scale = max(viewport_width / video_width, viewport_height / video_height)
    width = video_width * scale
    height = video_height * scale
    return CoverFit(
        scale,
        width,
        height,
        (viewport_width - width) / 2,
        (viewport_height - height) / 2,
    )


def start_button_rect(
    viewport_width,
    viewport_height,
    *,
    button_size=DFLT_BUTTON_SIZE,
    y_offset=DFLT_BUTTON_Y_OFFSET,
):
    """
    The (x, y, width, height) of the START button: horizontally centered, with its
    top edge a bit below the vertical center.

    >>> start_button_rect(800, 600)
    (300.0, 320.0, 200, 54)
    """
    bw, bh = button_size
    return (viewport_width / 2 - bw / 2, viewport_height / 2 + y_offset, bw, bh)


def paste(canvas: np.ndarray, img: np.ndarray, x: int, y: int) -> np.ndarray:
    """Paste img onto canvas with its top-left corner at (x, y), clipping what overflows."""
    ch, cw = canvas.shape[:2]
    ih, iw = img.shape[:2]
    x0, y0 = max(x, 0), max(y, 0)
    x1, y1 = min(x + iw, cw), min(y + ih, ch)
    if x0 < x1 and y0 < y1:
        canvas[y0:y1, x0:x1] = img[y0 - y : y1 - y, x0 - x : x1 - x]
    return canvas


def draw_centered_text(
    img,
    text,
    center,
    *,
    font=DFLT_FONT,
    font_scale: float = 0.7,
    color: Color = (255, 255, 255),
    thickness: int = 2,
):
    (text_width, text_height), _ = cv2.getTextSize(text, font, font_scale, thickness)
    origin = (int(center[0] - text_width / 2), int(center[1] + text_height / 2))
    cv2.putText(img, text, origin, font, font_scale, color, thickness, cv2.LINE_AA)
    return img


# -------------------------------------------------------------------------------
# Compositor
# -------------------------------------------------------------------------------


class Compositor:
    """
    Draws, every frame, the mirrored video with the mask over it, both cover-fit to
    the viewport with the same geometry, so holes land where the noses were.

    The mask lives in mirrored video space (the detector is fed mirrored frames),
    so the mask is blended onto the mirrored frame before scaling.
    """

    def __init__(self, *, mirror: bool = True, loading_text: str = DFLT_LOADING_TEXT):
        self.mirror = mirror
        self.loading_text = loading_text

    def render(
        self,
        frame: np.ndarray,
        mask: MaskBuffer,
        viewport: Viewport,
        *,
        loading: bool = False,
    ) -> np.ndarray:
        viewport_width, viewport_height = viewport
        video_height, video_width = frame.shape[:2]

        img = cv2.flip(frame, 1) if self.mirror else frame
        img = mask.composite(img)

        fit = cover_fit(viewport_width, viewport_height, video_width, video_height)
        scaled_size = (max(1, round(fit.width)), max(1, round(fit.height)))
        scaled = cv2.resize(img, scaled_size, interpolation=cv2.INTER_LINEAR)

        canvas = np.zeros((viewport_height, viewport_width, 3), dtype=np.uint8)
        paste(canvas, scaled, math.floor(fit.x_offset), math.floor(fit.y_offset))

        if loading:
            draw_centered_text(
                canvas, self.loading_text, (viewport_width / 2, viewport_height / 2)
            )
        return canvas


# -------------------------------------------------------------------------------
# Splash screen
# -------------------------------------------------------------------------------


def draw_splash(
    viewport: Viewport,
    *,
    detector_ready: bool = False,
    frame_count: int = 0,
    title: str = 'FACE ERASER!',
    subtitle: str = 'use your nose to reveal the video',
) -> np.ndarray:
    """Draw the start screen: title, subtitle, a pulsing START button and model status."""
    width, height = viewport
    img = np.full((height, width, 3), 20, dtype=np.uint8)

    # Scanlines, for a retro CRT feel
    img[::4] = (img[::4] * 0.85).astype(np.uint8)
    img[1::4] = (img[1::4] * 0.85).astype(np.uint8)

    cx, cy = width / 2, height / 2
    flicker = math.sin(frame_count * 0.3) * 3

    # Title, with a drop shadow
    title_y = cy - 80
    draw_centered_text(
        img, title, (cx + 4 + flicker, title_y + 4), font_scale=2.0,
        color=(0, 60, 255), thickness=5,
    )
    draw_centered_text(
        img, title, (cx + flicker, title_y), font_scale=2.0,
        color=(0, 220, 255), thickness=5,
    )
    draw_centered_text(
        img, subtitle, (cx, cy - 30), font_scale=0.6, color=(180, 255, 180),
        thickness=1,
    )

    # Pulsing START button
    pulse = math.sin(frame_count * 0.08) * 0.15 + 0.85
    bx, by, bw, bh = (int(v) for v in start_button_rect(width, height))
    glow = img.copy()
    cv2.rectangle(glow, (bx - 6, by - 6), (bx + bw + 6, by + bh + 6), (0, 220, 255), -1)
    cv2.addWeighted(glow, 0.16 * pulse, img, 1 - 0.16 * pulse, 0, img)
    button_color = tuple(
        int(lo + (hi - lo) * pulse) for lo, hi in zip((0, 140, 180), (0, 220, 255))
    )
    cv2.rectangle(img, (bx, by), (bx + bw, by + bh), button_color, -1)
    draw_centered_text(
        img, 'START', (cx, by + bh / 2 + 1), font_scale=0.9, color=(20, 20, 20)
    )

    # Model loading status
    if detector_ready:
        status, status_color = 'model ready', (100, 255, 100)
    else:
        status, status_color = 'loading model...', (100, 200, 200)
    draw_centered_text(
        img, status, (cx, cy + 100), font_scale=0.5, color=status_color, thickness=1
    )
    return img
