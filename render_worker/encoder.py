from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from .errors import EncoderError

logger = logging.getLogger(__name__)

FRAME_PATTERN = "frame_%06d.jpg"


def ffmpeg_command(ffmpeg_bin: str, frames_dir: Path, output_path: Path, frame_rate: int) -> list[str]:
    return [
        ffmpeg_bin,
        "-framerate", str(frame_rate),
        "-i", str(frames_dir / FRAME_PATTERN),
        "-c:v", "libx264",
        "-preset", "fast",
        "-crf", "23",
        "-pix_fmt", "yuv420p",
        "-movflags", "+faststart",     # moov atom up front so browsers can stream
        "-y",
        str(output_path),
    ]


async def stitch_frames(
    frames_dir: Path,
    output_path: Path,
    frame_rate: int,
    ffmpeg_bin: str = "ffmpeg",
) -> None:
    """Encode ``frame_000000.jpg ...`` in *frames_dir* into an H.264 MP4."""
    logger.info(
        "[ffmpeg] stitching frames at %sfps: %s -> %s", frame_rate, frames_dir, output_path
    )
    cmd = ffmpeg_command(ffmpeg_bin, frames_dir, output_path, frame_rate)
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise EncoderError(f"FFmpeg error: {exc}") from exc

    _, stderr = await proc.communicate()
    output = stderr.decode("utf-8", errors="replace")
    logger.debug("[ffmpeg] %s", output)

    if proc.returncode != 0:
        raise EncoderError(
            f"FFmpeg failed with code {proc.returncode}. Output: {output}",
            returncode=proc.returncode,
            output=output,
        )
    logger.info("[ffmpeg] encoded %s at %sfps", output_path.name, frame_rate)
