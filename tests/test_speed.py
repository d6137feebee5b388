"""Tests for pgnbase.speed module."""

import pytest

from pgnbase.errors import HeaderError, TimeControlError
from pgnbase.speed import Speed


@pytest.mark.parametrize(
    "time_control, expected",
    [
        ("0+0", Speed.ULTRA_BULLET),
        ("15+0", Speed.ULTRA_BULLET),
        ("60+0", Speed.BULLET),
        ("179+0", Speed.BULLET),
        ("180+0", Speed.BLITZ),
        ("300+3", Speed.BLITZ),
        ("479+0", Speed.BLITZ),
        ("480+0", Speed.RAPID),
        ("600+0", Speed.RAPID),
        ("1800+30", Speed.CLASSICAL),
        ("21600+0", Speed.CORRESPONDENCE),
        ("-", Speed.CORRESPONDENCE),
    ],
)
def test_from_time_control(time_control, expected):
    assert Speed.from_time_control(time_control) is expected


def test_increment_weighs_forty_moves():
    # 120 + 40 * 2 = 200 seconds
    assert Speed.from_time_control("120+2") is Speed.BLITZ
    assert Speed.from_seconds_and_increment(0, 11) is Speed.BLITZ
    assert Speed.from_seconds_and_increment(0, 12) is Speed.RAPID


def test_category_depends_only_on_estimated_total():
    for seconds, increment in [(100, 5), (300, 0), (0, 7), (260, 1)]:
        total = seconds + 40 * increment
        assert Speed.from_seconds_and_increment(seconds, increment) is Speed.from_seconds_and_increment(total, 0)


def test_category_monotonic_in_total():
    previous = Speed.ULTRA_BULLET
    for total in range(0, 30_000, 7):
        speed = Speed.from_seconds_and_increment(total, 0)
        assert speed >= previous
        previous = speed


@pytest.mark.parametrize("value", ["", "300", "abc+2", "300+", "+3", "5+3+1", "?", "-1+0", " 300+0"])
def test_malformed_time_control(value):
    with pytest.raises(TimeControlError):
        Speed.from_time_control(value)


def test_time_control_error_is_header_error():
    assert issubclass(TimeControlError, HeaderError)
    assert issubclass(TimeControlError, ValueError)


@pytest.mark.parametrize("text", ["UltraBullet", "ultra_bullet", "ULTRA-BULLET", "ultrabullet"])
def test_parse_names(text):
    assert Speed.parse(text) is Speed.ULTRA_BULLET


def test_parse_unknown():
    with pytest.raises(ValueError):
        Speed.parse("hyperbullet")


def test_labels_and_ordinals():
    assert [s.label for s in Speed] == [
        "UltraBullet", "Bullet", "Blitz", "Rapid", "Classical", "Correspondence",
    ]
    assert [int(s) for s in Speed] == [0, 1, 2, 3, 4, 5]
