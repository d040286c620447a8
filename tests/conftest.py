"""
Shared fixtures: synthetic document photos drawn with OpenCV
"""

import cv2
import numpy as np
import pytest


def draw_document(width, height, top_left, bottom_right, channels=3):
    """Black canvas with a filled white rectangle"""
    shape = (height, width, channels) if channels > 1 else (height, width)
    image = np.zeros(shape, dtype=np.uint8)
    color = (255,) * channels if channels > 1 else 255
    cv2.rectangle(image, top_left, bottom_right, color, -1)
    return image


@pytest.fixture
def document_image():
    """700x500 white page on an 800x600 black canvas"""
    return draw_document(800, 600, (50, 50), (750, 550))


@pytest.fixture
def wide_document_image():
    """500x200 white strip, too wide for the strictest strategy"""
    return draw_document(800, 600, (150, 200), (650, 400))


@pytest.fixture
def blank_image():
    return np.zeros((600, 800, 3), dtype=np.uint8)


@pytest.fixture
def png_bytes(document_image):
    ok, buffer = cv2.imencode(".png", document_image)
    assert ok
    return buffer.tobytes()
