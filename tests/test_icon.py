import pytest

from claude_usage import icon


@pytest.mark.parametrize('pct', [0, 29, 45, 99, 100])
def test_usage_icon_is_square_rgba(pct):
    img = icon.create_icon_image(pct, 'green')
    assert img.size == (64, 64)
    assert img.mode == 'RGBA'


def test_progress_bar_fill_matches_percentage():
    img = icon.create_icon_image(50, 'red', dark=True)

    assert img.getpixel((10, 60)) == icon.LEVEL_COLORS['red']
    assert img.getpixel((50, 60)) == icon.ICON_LIGHT['fg_half']


def test_grey_follows_theme():
    assert icon.level_color('grey', dark=True) == icon.ICON_LIGHT['fg']
    assert icon.level_color('grey', dark=False) == icon.ICON_DARK['fg']
    assert icon.level_color('orange', dark=False) == icon.LEVEL_COLORS['orange']


def test_status_image():
    img = icon.create_status_image('R', alternate=True)
    assert img.size == (64, 64)
    assert icon.LEVEL_COLORS['orange'] in {color for _, color in img.getcolors(64 * 64)}


def test_light_menu_bar_when_style_is_unset(monkeypatch):
    class Result:
        returncode = 1
        stdout = ''

    monkeypatch.setattr(icon.subprocess, 'run', lambda *a, **kw: Result())
    assert icon.menu_bar_is_dark() is False


def test_dark_menu_bar(monkeypatch):
    class Result:
        returncode = 0
        stdout = 'Dark\n'

    monkeypatch.setattr(icon.subprocess, 'run', lambda *a, **kw: Result())
    assert icon.menu_bar_is_dark() is True
