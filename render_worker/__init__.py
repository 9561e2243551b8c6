"""Render HTML/GSAP animations to MP4 in headless Chromium."""

__version__ = "0.1.0"
