"""
Best-effort guess of how long a GSAP animation plays, in seconds.

Only seeds a lower bound for the capture window, so a wrong answer costs
recording time, never correctness.
"""

import re

_DURATION = re.compile(r"duration[:\s]*(\d+(?:\.\d+)?)", re.IGNORECASE)
_TIMELINE_STEP = re.compile(
    r"timeline\.to\([^,]+,\s*\{[^}]*duration[:\s]*(\d+(?:\.\d+)?)", re.IGNORECASE
)
_INFINITE_REPEAT = re.compile(
    r"repeat[:\s]*-1[^}]*duration[:\s]*(\d+(?:\.\d+)?)", re.IGNORECASE
)

# (max length, seconds) for scripts that declare nothing usable
_LENGTH_BREAKPOINTS = ((1000, 5), (2000, 8), (3000, 12))
_LONGEST = 15


def estimate_duration(code: str) -> float:
    for pattern in (_DURATION, _TIMELINE_STEP, _INFINITE_REPEAT):
        match = pattern.search(code)
        if match:
            return float(match.group(1))

    for limit, seconds in _LENGTH_BREAKPOINTS:
        if len(code) < limit:
            return seconds
    return _LONGEST
