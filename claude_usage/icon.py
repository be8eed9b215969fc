"""
Menu-bar icon rendering with Pillow.

Layout (64x64): the primary percentage (or "C" while usage is low)
colored by level, with a thin progress bar flush to the bottom.
Error states show the first letter of the error token instead.
"""
from __future__ import annotations

import functools
import subprocess

from PIL import Image, ImageDraw, ImageFont

ICON_LIGHT = {  # Light icons for a dark menu bar
    'fg': (255, 255, 255, 255),
    'fg_half': (255, 255, 255, 80),
    'fg_dim': (255, 255, 255, 140),
}
ICON_DARK = {  # Dark icons for a light menu bar
    'fg': (0, 0, 0, 255),
    'fg_half': (0, 0, 0, 80),
    'fg_dim': (0, 0, 0, 140),
}
LEVEL_COLORS = {
    'green': (52, 199, 89, 255),
    'yellow': (255, 204, 0, 255),
    'orange': (255, 149, 0, 255),
    'red': (255, 59, 48, 255),
}
TRANSPARENT = (0, 0, 0, 0)

FONT_PATHS = (
    '/System/Library/Fonts/SFNS.ttf',
    '/System/Library/Fonts/Helvetica.ttc',
    '/Library/Fonts/Arial Bold.ttf',
    'DejaVuSans-Bold.ttf',
)


@functools.lru_cache(maxsize=None)
def load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    for name in FONT_PATHS:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue

    return ImageFont.load_default()


def menu_bar_is_dark() -> bool:
    """Return True if macOS is in dark mode.

    ``defaults read -g AppleInterfaceStyle`` prints "Dark" in dark mode
    and fails in light mode.  Returns True if it cannot be run at all.
    """
    try:
        result = subprocess.run(
            ['defaults', 'read', '-g', 'AppleInterfaceStyle'],
            capture_output=True, text=True, timeout=5,
        )
    except (OSError, subprocess.TimeoutExpired):
        return True

    return result.returncode == 0 and result.stdout.strip() == 'Dark'


def level_color(color: str, dark: bool = True) -> tuple[int, int, int, int]:
    """Return the RGBA color for a level name; "grey" follows the theme."""
    if color in LEVEL_COLORS:
        return LEVEL_COLORS[color]

    return (ICON_LIGHT if dark else ICON_DARK)['fg']


def _draw_centered(draw: ImageDraw.ImageDraw, size: int, text: str, font, fill, top: bool) -> None:
    bbox = draw.textbbox((0, 0), text, font=font)
    tw, th = bbox[2] - bbox[0], bbox[3] - bbox[1]
    y = -bbox[1] if top else (size - th) / 2 - bbox[1]
    draw.text(((size - tw) / 2 - bbox[0], y), text, fill=fill, font=font)


def create_icon_image(pct: int, color: str = 'grey', dark: bool = True) -> Image.Image:
    """Create the usage icon: percentage text plus a progress bar."""
    colors = ICON_LIGHT if dark else ICON_DARK
    fg = level_color(color, dark)

    S = 64
    img = Image.new('RGBA', (S, S), TRANSPARENT)
    draw = ImageDraw.Draw(img)

    if pct >= 100:
        text, font = '!', load_font(42)
    elif pct >= 30:
        text, font = f'{pct}', load_font(40)
    else:
        text, font = 'C', load_font(42)
    _draw_centered(draw, S, text, font, fg, top=True)

    bar_h = 10
    y = S - bar_h
    draw.rectangle([0, y, S - 1, S - 1], fill=colors['fg_half'])
    fill_w = max(0, min(S, int(S * pct / 100)))
    if fill_w > 0:
        draw.rectangle([0, y, fill_w - 1, S - 1], fill=fg)

    return img


def create_status_image(text: str, alternate: bool = False, dark: bool = True) -> Image.Image:
    """Create a centered-text icon for loading and error states."""
    fill = LEVEL_COLORS['orange'] if alternate else (ICON_LIGHT if dark else ICON_DARK)['fg_dim']

    S = 64
    img = Image.new('RGBA', (S, S), TRANSPARENT)
    draw = ImageDraw.Draw(img)
    _draw_centered(draw, S, text, load_font(46), fill, top=False)

    return img
