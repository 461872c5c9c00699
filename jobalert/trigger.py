"""
Manual pipeline trigger for Job Alert.

Runs the external scrape + score + notify pipeline on demand and reduces
its outcome to a single human-readable message.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .config import PipelineConfig

logger = logging.getLogger(__name__)


@dataclass
class TriggerResult:
    """Outcome of one pipeline run."""
    success: bool
    message: str
    jobs_scraped: int = 0
    jobs_processed: int = 0
    error: Optional[str] = None


def _nested_count(data: dict, section: str, key: str) -> int:
    """Read data[section][key], treating anything missing or falsy as 0."""
    value = data.get(section) if isinstance(data, dict) else None
    if isinstance(value, dict):
        return value.get(key) or 0
    return 0


class PipelineTrigger:
    """
    Issues a single POST to the pipeline endpoint.

    No retries and no polling: the call either returns counts or an error.
    """

    def __init__(self, config: PipelineConfig, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the trigger.

        Args:
            config: Pipeline endpoint configuration.
            client: HTTP client to use. One is created if not given.
        """
        self.config = config
        self.url = config.url
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout, connect=10.0)
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.cron_secret:
            headers["Authorization"] = f"Bearer {self.config.cron_secret}"
        return headers

    def _failure(self, error: str) -> TriggerResult:
        logger.error(f"Pipeline run failed: {error}")
        return TriggerResult(success=False, message=f"❌ Error: {error}", error=error)

    async def run(self) -> TriggerResult:
        """
        Run the pipeline once.

        Returns:
            TriggerResult with either the scraped/processed counts or an error.
        """
        logger.info(f"Triggering pipeline at {self.url}")

        try:
            response = await self.client.post(self.url, headers=self._headers())
            data = response.json()
        except Exception as e:
            return self._failure(str(e) or "Network error")

        if not response.is_success:
            error = data.get("error") if isinstance(data, dict) else None
            return self._failure(error or "Failed to run pipeline")

        jobs_scraped = _nested_count(data, "scraped", "jobsScraped")
        jobs_processed = _nested_count(data, "processed", "success")

        logger.info(f"Pipeline complete: {jobs_scraped} scraped, {jobs_processed} processed")
        return TriggerResult(
            success=True,
            message=f"✅ Success! {jobs_scraped} jobs scraped, {jobs_processed} processed",
            jobs_scraped=jobs_scraped,
            jobs_processed=jobs_processed,
        )

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()
