"""The opaque mask that noses erase, one hole at a time."""

import cv2
import numpy as np

from faceeraser.util import (
    DFLT_VIDEO_WIDTH,
    DFLT_VIDEO_HEIGHT,
    DFLT_MASK_GRAY,
)

OPAQUE = 255
CLEAR = 0


class MaskBuffer:
    """
    An alpha mask over the video's pixel grid. It starts fully opaque and can only
    ever lose coverage: `erase` writes zeros, and nothing writes anything else.

    >>> mask = MaskBuffer(width=8, height=6)
    >>> mask.coverage()
    1.0
    >>> mask.erase(4, 3, 1)
    >>> int(mask.alpha[3, 4]), int(mask.alpha[0, 0])
    (0, 255)
    """

    def __init__(
        self,
        width: int = DFLT_VIDEO_WIDTH,
        height: int = DFLT_VIDEO_HEIGHT,
        *,
        gray: int = DFLT_MASK_GRAY,
    ):
        if width <= 0 or height <= 0:
            raise ValueError(f"Mask size must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.gray = gray
        self.alpha = np.full((height, width), OPAQUE, dtype=np.uint8)

    @property
    def shape(self):
        return self.alpha.shape

    def erase(self, x: float, y: float, radius: float) -> None:
        """
        Clear alpha in the filled circle centred at (x, y), like a "destination-out"
        composite. Pixels outside the buffer are clipped by cv2.
        """
        if radius <= 0:
            raise ValueError(f"radius must be positive, got {radius}")
        center = (int(round(x)), int(round(y)))
        cv2.circle(self.alpha, center, int(round(radius)), CLEAR, thickness=-1)

    def coverage(self) -> float:
        """Fraction of the mask's pixels that are still (even partially) opaque."""
        return float(np.count_nonzero(self.alpha)) / self.alpha.size

    def composite(self, img: np.ndarray) -> np.ndarray:
        """
        Alpha-blend the gray mask over a BGR image of the mask's size.
        Zero alpha shows the image, full alpha shows the gray.
        """
        if img.shape[:2] != self.alpha.shape:
            raise ValueError(
                f"Image size {img.shape[:2]} does not match mask size {self.alpha.shape}"
            )
        a = (self.alpha.astype(np.float32) / OPAQUE)[..., np.newaxis]
        blended = img.astype(np.float32) * (1.0 - a) + float(self.gray) * a
        return np.clip(np.rint(blended), 0, 255).astype(np.uint8)
