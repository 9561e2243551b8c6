"""
Render job orchestration: request → page → frames → MP4 → bucket → webhook.

Every job gets its own scratch directory and its own browser, so two jobs
running in the same process share nothing but the (read-only) uploader.
"""

from __future__ import annotations

import logging
import re
import shutil
import tempfile
import time
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError

from .browser_manager import record_animation
from .config import Settings
from .duration import estimate_duration
from .errors import JobValidationError, WebhookError, WorkspaceError
from .page import build_animation_page
from .schema import JobRequest, JobResult
from .storage import VideoUploader
from .webhook import notify_webhook

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("jobId", "animationCode", "dimensions", "webhookUrl")
_UNSAFE_PATH_CHARS = re.compile(r"[^\w.-]")


# ---------- workspace ---------- #
def create_workspace(job_id: str, root: Path) -> Path:
    try:
        root.mkdir(parents=True, exist_ok=True)
        prefix = f"job-{_UNSAFE_PATH_CHARS.sub('_', job_id)}-"
        return Path(tempfile.mkdtemp(prefix=prefix, dir=root))
    except OSError as exc:
        raise WorkspaceError(f"cannot create workspace for job {job_id}: {exc}") from exc


def remove_workspace(workspace: Path) -> None:
    try:
        shutil.rmtree(workspace)
        logger.info("[worker] cleaned up temp directory %s", workspace)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("[worker] cleanup warning for %s: %s", workspace, exc)


# ---------- validation ---------- #
async def _reject(webhook_url: str | None, message: str, settings: Settings) -> None:
    logger.error("[worker] %s", message)
    if webhook_url:
        try:
            await notify_webhook(webhook_url, JobResult.failed(message), settings.webhook_timeout)
        except WebhookError as exc:
            logger.error("[worker] failed to notify webhook: %s", exc)
    raise JobValidationError(message)


async def parse_request(payload: Mapping[str, Any], settings: Settings) -> JobRequest:
    webhook_url = payload.get("webhookUrl")
    if not isinstance(webhook_url, str):
        webhook_url = None

    if any(not payload.get(name) for name in REQUIRED_FIELDS):
        await _reject(
            webhook_url,
            f"Missing required parameters: {', '.join(REQUIRED_FIELDS)}",
            settings,
        )
    try:
        return JobRequest.model_validate(payload)
    except ValidationError as exc:
        await _reject(webhook_url, f"Invalid job request: {exc}", settings)


# ---------- pipeline ---------- #
async def run_job(
    payload: Mapping[str, Any],
    *,
    settings: Settings,
    uploader: VideoUploader,
) -> dict:
    """
    Render one animation end to end and return the webhook payload.

    The webhook receives exactly one notification per job. Pipeline errors are
    reported as ``FAILED`` and then re-raised; a failing webhook on the
    success path raises ``WebhookError`` to the caller.
    """
    started = time.monotonic()
    request = await parse_request(payload, settings)
    job_id = request.job_id
    logger.info("[worker] starting video rendering job %s", job_id)

    workspace: Path | None = None
    try:
        workspace = create_workspace(job_id, settings.work_root)
        logger.info("[worker] created temp directory: %s", workspace)

        html_content = request.animation_code.html_content
        html_path = workspace / "animation.html"
        html_path.write_text(
            build_animation_page(html_content, settings.mapbox_api_key), encoding="utf-8"
        )

        duration = max(estimate_duration(html_content), settings.min_render_duration)
        logger.info("[worker] video duration: %ss", duration)

        mp4_path = workspace / "recording.mp4"
        await record_animation(
            html_path,
            mp4_path,
            request.dimensions,
            duration,
            request.uses_mapbox,
            settings,
        )
        logger.info("[worker] video recorded: %s", mp4_path)

        video_url = await uploader.upload(mp4_path, job_id)
    except Exception as exc:
        logger.exception("[worker] video rendering failed for job %s", job_id)
        if workspace is not None:
            remove_workspace(workspace)
        try:
            await notify_webhook(
                request.webhook_url,
                JobResult.failed(str(exc) or "Unknown error during video rendering"),
                settings.webhook_timeout,
            )
        except WebhookError as webhook_exc:
            logger.error("[worker] failed to notify webhook: %s", webhook_exc)
        raise

    remove_workspace(workspace)

    result = JobResult.completed(video_url)
    await notify_webhook(request.webhook_url, result, settings.webhook_timeout)

    logger.info(
        "[worker] job %s completed successfully in %dms",
        job_id, (time.monotonic() - started) * 1000,
    )
    return result.to_payload()
