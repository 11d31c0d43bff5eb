"""Small image helpers shared by rendering and quality analysis."""

from __future__ import annotations

import numpy as np


def to_gray(frame: np.ndarray) -> np.ndarray:
    """
    Reduce a frame to one uint8 channel.

    Accepts grayscale, BGR and BGRA frames as decoded by OpenCV.
    Non-uint8 input is clipped to 0..255.
    """
    import cv2

    if frame.dtype != np.uint8:
        frame = np.clip(frame, 0, 255).astype(np.uint8)

    if frame.ndim == 2:
        return frame
    if frame.ndim == 3 and frame.shape[2] == 1:
        return frame[:, :, 0]
    if frame.ndim == 3 and frame.shape[2] == 3:
        return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    if frame.ndim == 3 and frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2GRAY)
    raise ValueError(f"Unsupported frame shape {frame.shape}")
