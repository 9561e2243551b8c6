"""
Frame capture
=============

* One **Chromium process per job**, launched and closed inside
  ``capture_frames`` so a failing job can never leak a browser.
* Frames come from the CDP screencast. The CDP handler only enqueues; a
  single ``FrameWriter`` task writes each JPEG and acks it, and Chrome
  does not send the next frame until that ack arrives.
* Capture stops when the page calls ``window.onComplete()`` or when the
  deadline (twice the estimated duration) passes, whichever is first.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import contextlib
import logging
import shutil
from pathlib import Path
from typing import Awaitable, Callable

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .config import Settings
from .encoder import FRAME_PATTERN, stitch_frames
from .errors import CaptureError, NoFramesCaptured
from .schema import Dimensions

logger = logging.getLogger(__name__)

LIBRARY_READY = "() => typeof globalThis.gsap !== 'undefined'"

_BASE_ARGS = [
    "--disable-setuid-sandbox",
    "--disable-extensions",
    "--disable-sync",
    "--disable-translate",
    "--no-first-run",
    "--no-zygote",
    "--mute-audio",
    "--enable-unsafe-swiftshader",
    "--high-dpi-support=1",
    "--font-render-hinting=full",
    "--enable-font-antialiasing",
    "--disable-lcd-text",
    "--enable-accelerated-2d-canvas",
    "--enable-zero-copy",
    "--disable-web-security",
    "--allow-running-insecure-content",
    "--autoplay-policy=no-user-gesture-required",
    "--disable-background-media-suspend",
    "--disable-backgrounding-occluded-windows",
]

# Crisp text/canvas output, no scrollbars, no backface flicker.
RENDER_INIT_SCRIPT = """
(() => {
  Object.defineProperty(globalThis, "scrollBehavior", { value: "auto", writable: false });
  globalThis.document.addEventListener("DOMContentLoaded", () => {
    const style = globalThis.document.createElement("style");
    style.textContent = `
      * {
        -webkit-backface-visibility: hidden;
        backface-visibility: hidden;
        image-rendering: auto;
        text-rendering: optimizeLegibility;
        animation-fill-mode: both;
      }
      body {
        will-change: transform, opacity;
        margin: 0;
        padding: 0;
        overflow: hidden;
        -webkit-font-smoothing: antialiased;
        -moz-osx-font-smoothing: grayscale;
        text-rendering: optimizeLegibility;
      }
      .mapboxgl-canvas {
        image-rendering: auto !important;
      }
    `;
    globalThis.document.head.appendChild(style);
  });
})();
"""


def chromium_args(uses_mapbox: bool, gl_mode: str, scale_factor: int = 2) -> list[str]:
    """Launch flags: GPU WebGL paths for Mapbox pages, SwiftShader otherwise."""
    if uses_mapbox:
        extra = [
            "--headless=new",
            "--enable-webgl",
            "--enable-webgl2-compute-context",
            f"--use-gl={gl_mode}",
            "--use-angle=gl-egl",
            "--ignore-gpu-blocklist",
            "--disable-frame-rate-limit",
            "--disable-gpu-vsync",
        ]
    else:
        extra = [
            f"--use-gl={gl_mode}",
            "--use-angle=gl-egl",
            "--enable-webgl-software-rendering",
            "--memory-pressure-off",
            "--disable-frame-rate-limit",
        ]
    return [*_BASE_ARGS, f"--force-device-scale-factor={scale_factor}", *extra]


def effective_frame_rate(frame_count: int, duration: float) -> int:
    capture_window = min(duration, duration * 2)
    return round(max(frame_count / capture_window, 1))


# --------------------------------------------------------------------------- #
# Frame queue → disk
# --------------------------------------------------------------------------- #

class FrameWriter:
    """
    Bounded hand-off between the screencast and the disk.

    ``submit`` is registered as the ``Page.screencastFrame`` handler. The
    writer task saves frames as ``frame_000000.jpg``, ``frame_000001.jpg`` ...
    in arrival order and calls ``ack(session_id)`` only after a frame is on
    disk (or failed to save), which is what paces the browser.
    """

    def __init__(
        self,
        frames_dir: Path,
        ack: Callable[[int], Awaitable[object]],
        maxsize: int = 8,
    ) -> None:
        self.frames_dir = frames_dir
        self.count = 0
        self._ack = ack
        self._queue: asyncio.Queue[dict | None] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        self._task = asyncio.create_task(self._run())

    async def submit(self, event: dict) -> None:
        if self._closed:
            return
        await self._queue.put(event)

    async def close(self) -> int:
        """Stop accepting frames, flush what is queued, return the frame count."""
        if self._closed:
            return self.count
        self._closed = True
        if self._task is not None:
            await self._queue.put(None)
            await self._task
        return self.count

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            try:
                jpeg = base64.b64decode(event["data"])
                path = self.frames_dir / (FRAME_PATTERN % self.count)
                await asyncio.to_thread(path.write_bytes, jpeg)
                self.count += 1
            except (OSError, KeyError, binascii.Error) as exc:
                logger.error("[capture] error saving frame %d: %s", self.count, exc)
            await self._acknowledge(event.get("sessionId"))

    async def _acknowledge(self, session_id: int | None) -> None:
        if session_id is None:
            return
        try:
            await self._ack(session_id)
        except PlaywrightError as exc:
            # the screencast may already be stopped
            logger.debug("[capture] frame ack failed: %s", exc)


# --------------------------------------------------------------------------- #
# Browser session
# --------------------------------------------------------------------------- #

async def capture_frames(
    html_path: Path,
    frames_dir: Path,
    dimensions: Dimensions,
    duration: float,
    uses_mapbox: bool,
    settings: Settings,
) -> int:
    """Play *html_path* in headless Chromium and save its screencast frames."""
    logger.info(
        "[capture] starting browser recording for %ss at %dx%d",
        duration, dimensions.width, dimensions.height,
    )
    async with async_playwright() as pw:
        try:
            browser = await pw.chromium.launch(
                headless=True,
                args=chromium_args(
                    uses_mapbox, settings.chrome_gl_mode, settings.device_scale_factor
                ),
            )
        except PlaywrightError as exc:
            raise CaptureError(f"browser launch failed: {exc}") from exc

        try:
            return await _record_page(browser, html_path, frames_dir, dimensions, duration, settings)
        except PlaywrightError as exc:
            raise CaptureError(f"rendering failed: {exc}") from exc
        finally:
            await browser.close()


async def _record_page(browser, html_path, frames_dir, dimensions, duration, settings) -> int:
    context = await browser.new_context(
        viewport={"width": dimensions.width, "height": dimensions.height},
        device_scale_factor=settings.device_scale_factor,
        ignore_https_errors=True,
        bypass_csp=True,
        permissions=["camera", "microphone"],
        reduced_motion="no-preference",
        color_scheme="no-preference",
        forced_colors="none",
    )
    page = await context.new_page()
    page.on("console", lambda msg: logger.info("[browser console %s] %s", msg.type, msg.text))
    page.on("pageerror", lambda err: logger.error("[page error] %s", err))
    await page.add_init_script(RENDER_INIT_SCRIPT)

    finished = asyncio.Event()

    def on_complete(*_args) -> None:
        logger.info("[capture] animation completion signal received")
        finished.set()

    await page.expose_function("onComplete", on_complete)

    cdp = await context.new_cdp_session(page)
    writer = FrameWriter(
        frames_dir,
        lambda sid: cdp.send("Page.screencastFrameAck", {"sessionId": sid}),
        maxsize=settings.frame_queue_size,
    )
    cdp.on("Page.screencastFrame", writer.submit)

    await page.goto(html_path.resolve().as_uri())
    try:
        await page.wait_for_function(LIBRARY_READY, timeout=settings.library_timeout * 1000)
    except PlaywrightTimeoutError as exc:
        raise CaptureError(
            f"animation library not available after {settings.library_timeout}s"
        ) from exc

    writer.start()
    try:
        await cdp.send("Page.startScreencast", {
            "format": "jpeg",
            "quality": settings.jpeg_quality,
            "everyNthFrame": 1,
            "maxWidth": dimensions.width,
            "maxHeight": dimensions.height,
        })
        logger.info("[capture] started screencast recording")
        await _wait_until_done(finished, deadline=duration * 2)
        with contextlib.suppress(PlaywrightError):
            await cdp.send("Page.stopScreencast")
    finally:
        frame_count = await writer.close()
        with contextlib.suppress(PlaywrightError):
            await cdp.detach()

    logger.info("[capture] captured %d frames", frame_count)
    return frame_count


async def _wait_until_done(finished: asyncio.Event, deadline: float) -> None:
    try:
        await asyncio.wait_for(finished.wait(), timeout=deadline)
    except asyncio.TimeoutError:
        logger.info("[capture] no completion signal after %ss, stopping", deadline)


# --------------------------------------------------------------------------- #
# Capture → encode
# --------------------------------------------------------------------------- #

async def record_animation(
    html_path: Path,
    output_path: Path,
    dimensions: Dimensions,
    duration: float,
    uses_mapbox: bool,
    settings: Settings,
) -> None:
    frames_dir = output_path.parent / "frames"
    frames_dir.mkdir(parents=True, exist_ok=True)

    frame_count = await capture_frames(
        html_path, frames_dir, dimensions, duration, uses_mapbox, settings
    )
    if frame_count == 0:
        raise NoFramesCaptured("No frames were captured during recording")

    await stitch_frames(
        frames_dir,
        output_path,
        effective_frame_rate(frame_count, duration),
        ffmpeg_bin=settings.ffmpeg_bin,
    )
    shutil.rmtree(frames_dir, ignore_errors=True)
