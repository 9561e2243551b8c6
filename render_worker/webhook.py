from __future__ import annotations

import asyncio
import logging

import aiohttp

from .errors import WebhookError
from .schema import JobResult

logger = logging.getLogger(__name__)


async def notify_webhook(webhook_url: str, result: JobResult, timeout: float = 10) -> None:
    """POST the job outcome to the caller's webhook. Any failure is raised."""
    logger.info("[webhook] notifying %s (%s)", webhook_url, result.status)
    try:
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as http:
            async with http.post(webhook_url, json=result.to_payload()) as resp:
                if resp.status >= 400:
                    raise WebhookError(
                        f"webhook {webhook_url} answered {resp.status}: {await resp.text()}"
                    )
                logger.info("[webhook] notification successful: %s", resp.status)
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        logger.error("[webhook] notification failed: %s", exc)
        raise WebhookError(f"webhook {webhook_url} unreachable: {exc or type(exc).__name__}") from exc
