import pytest

from clipbot.converter import Dimensions, scale_dimensions


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1920x1080", (512, 288)),
        ("1080x1920", (288, 512)),
        ("500x500", (512, 512)),
        ("100x300", (170, 512)),
        ("1920x1080\n", (512, 288)),
        ("640x480", (512, 384)),
    ],
)
def test_longer_side_is_512(raw, expected):
    assert scale_dimensions(raw) == expected


@pytest.mark.parametrize("raw", ["garbage", "", "x1080", "1920by1080", "0x0", "1920x0"])
def test_unparsable_gives_zero(raw):
    size = scale_dimensions(raw)
    assert size == Dimensions(0, 0)
    assert not size.valid


def test_dimensions_format():
    assert str(Dimensions(512, 288)) == "512x288"
