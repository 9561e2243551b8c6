import pytest

from render_worker.duration import estimate_duration


def test_explicit_duration():
    assert estimate_duration('gsap.to(".box", { x: 200, duration: 7 });') == 7


def test_fractional_duration():
    assert estimate_duration("tl.to(el, {duration:2.5, y: 10})") == 2.5


def test_duration_is_case_insensitive():
    assert estimate_duration("// Duration: 4 seconds") == 4


def test_duration_alongside_infinite_repeat():
    code = 'gsap.to(".spin", { rotation: 360, repeat: -1, ease: "none", duration: 3 });'
    assert estimate_duration(code) == 3


def test_timeline_step_duration():
    assert estimate_duration('timeline.to(".a", { opacity: 1, duration: 6 })') == 6


@pytest.mark.parametrize(
    "length, expected",
    [(0, 5), (999, 5), (1000, 8), (1500, 8), (2999, 12), (3000, 15), (10_000, 15)],
)
def test_length_fallback(length, expected):
    assert estimate_duration("x" * length) == expected
