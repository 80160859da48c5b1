"""Tests for framebuffer rendering."""

import numpy as np
import pytest
from PIL import Image
from chipax.rendering import chip8_display_to_rgb, create_color_scheme, save_frame


def test_rgb_shape_and_orientation(fresh_state):
    display = fresh_state.display.at[63, 0].set(True)

    rgb = chip8_display_to_rgb(display, scale=1)

    assert rgb.shape == (32, 64, 3)
    assert rgb.dtype == np.uint8
    assert tuple(rgb[0, 63]) == (0, 255, 0)
    assert tuple(rgb[0, 0]) == (0, 0, 0)


def test_rgb_upscaling(fresh_state):
    display = fresh_state.display.at[1, 2].set(True)

    rgb = chip8_display_to_rgb(display, scale=4, on_color=(255, 255, 255))

    assert rgb.shape == (128, 256, 3)
    assert (rgb[8:12, 4:8] == 255).all()
    assert (rgb[0:8, :] == 0).all()


def test_color_schemes():
    assert create_color_scheme() == ((0, 255, 0), (0, 0, 0))
    assert create_color_scheme("amber")[0] == (255, 176, 0)
    with pytest.raises(ValueError):
        create_color_scheme("octarine")


def test_save_frame(fresh_state, tmp_path):
    display = fresh_state.display.at[0, 0].set(True)
    path = tmp_path / "frame.png"

    save_frame(display, str(path), scale=2, color_scheme="white")

    image = Image.open(path)
    assert image.size == (128, 64)
    assert image.getpixel((0, 0)) == (255, 255, 255)
    assert image.getpixel((2, 0)) == (0, 0, 0)
