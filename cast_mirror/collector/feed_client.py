"""Upstream feed API client for fetching channel casts."""

import asyncio
import logging
from contextlib import nullcontext
from typing import Any, Dict, List, Optional

import aiohttp

from cast_mirror.config import MAX_PAGE_SIZE, FeedConfig
from cast_mirror.exceptions import UpstreamFailure, UpstreamUnauthorized

logger = logging.getLogger(__name__)


def _flag(value: bool) -> str:
    return "true" if value else "false"


class FeedClient:
    """Wrapper for the Neynar channel feed endpoint with session handling."""

    def __init__(
        self,
        config: FeedConfig,
        session: Optional[aiohttp.ClientSession] = None,
        prometheus_exporter=None,
    ):
        """
        Initialize the feed client with configuration.

        Args:
            config: Upstream feed configuration (API key, channel, page size)
            session: Optional pre-built aiohttp session; created lazily otherwise
            prometheus_exporter: Optional Prometheus exporter for metrics
        """
        self.config = config
        self.prometheus_exporter = prometheus_exporter
        self._session = session
        self._owns_session = session is None

    async def initialize(self) -> aiohttp.ClientSession:
        """Create the HTTP session if one was not supplied."""
        if self._session is None:
            logger.info("Initializing feed API session")
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_sec),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            logger.info("Feed API session closed")
        self._session = None

    @property
    def url(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/feed/channels"

    def _params(self) -> Dict[str, str]:
        return {
            "channel_ids": self.config.channel_ids,
            "with_recasts": _flag(self.config.with_recasts),
            "with_replies": _flag(self.config.with_replies),
            "limit": str(min(self.config.page_size, MAX_PAGE_SIZE)),
            "should_moderate": _flag(self.config.should_moderate),
        }

    def _headers(self) -> Dict[str, str]:
        return {"accept": "application/json", "api_key": self.config.api_key or ""}

    def _record_error(self, error_type: str) -> None:
        if self.prometheus_exporter:
            self.prometheus_exporter.record_upstream_error(error_type)

    async def fetch_casts(self) -> List[Dict[str, Any]]:
        """
        Fetch one page of casts from the configured channel.

        Returns:
            List of raw cast payloads

        Raises:
            UpstreamUnauthorized: If the API rejects the key (HTTP 401)
            UpstreamFailure: On any other non-2xx status, network error,
                timeout or unexpected response body
        """
        session = await self.initialize()
        timer = self.prometheus_exporter.time_request() if self.prometheus_exporter else None

        try:
            with timer if timer else nullcontext():
                async with session.get(self.url, params=self._params(), headers=self._headers()) as response:
                    if response.status == 401:
                        logger.error("API request failed due to unauthorized access. Please check your API key.")
                        self._record_error("401")
                        raise UpstreamUnauthorized(
                            "Please check your API key and ensure it is correctly set in your environment variables."
                        )
                    if not 200 <= response.status < 300:
                        error_type = "5xx" if 500 <= response.status < 600 else str(response.status)
                        self._record_error(error_type)
                        raise UpstreamFailure(
                            f"API request failed with status {response.status}", status=response.status
                        )
                    data = await response.json(content_type=None)
        except (UpstreamUnauthorized, UpstreamFailure):
            raise
        except asyncio.TimeoutError as e:
            self._record_error("timeout")
            raise UpstreamFailure(f"API request timed out after {self.config.timeout_sec}s") from e
        except aiohttp.ClientError as e:
            self._record_error("connection")
            raise UpstreamFailure(f"API request failed: {str(e)}") from e
        except ValueError as e:
            self._record_error("invalid_body")
            raise UpstreamFailure(f"API returned invalid JSON: {str(e)}") from e

        if not isinstance(data, dict) or not isinstance(data.get("casts"), list):
            self._record_error("invalid_body")
            raise UpstreamFailure("Unexpected response structure: missing 'casts' list")

        casts = data["casts"]
        logger.info(f"Fetched {len(casts)} casts from channel '{self.config.channel_ids}'")
        return casts
