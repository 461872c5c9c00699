"""
Embedding utilities for Job Alert.

Provides the Jina AI embeddings client with bounded retry and
exponential backoff, a single-slot cache, and the accessor that turns a
user's stored skills into a cached embedding.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol

import httpx
import numpy as np

from .config import EmbeddingConfig
from .database import UserPreferences
from .errors import ConfigError, ProviderError

logger = logging.getLogger(__name__)

EmbeddingVector = tuple[float, ...]
SleepFunc = Callable[[float], Awaitable[None]]


def rate_limit_delay_ms(attempt: int, base_ms: int = 5000) -> int:
    """Wait before retrying after HTTP 429: 2^attempt * base."""
    return (2 ** attempt) * base_ms


def network_error_delay_ms(attempt: int, base_ms: int = 2000) -> int:
    """Wait before retrying after a transport-level failure: 2^attempt * base."""
    return (2 ** attempt) * base_ms


def cosine_similarity(a: EmbeddingVector, b: EmbeddingVector) -> float:
    """
    Compute cosine similarity between two embeddings.

    Returns 0.0 when either vector has zero norm.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"Embedding shapes differ: {va.shape} vs {vb.shape}")

    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    return float(np.dot(va, vb) / norm)


class EmbeddingClient:
    """
    Client for the Jina AI embeddings endpoint.

    Attempts are strictly sequential. Waits between attempts go through
    ``sleep`` (``asyncio.sleep`` by default), so cancelling the calling
    task aborts a pending retry.
    """

    def __init__(
        self,
        config: EmbeddingConfig,
        client: Optional[httpx.AsyncClient] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """
        Initialize the embedding client.

        Args:
            config: Embedding provider configuration.
            client: HTTP client to use. One is created if not given.
            sleep: Awaitable used for backoff waits, takes seconds.
        """
        self.config = config
        self.api_url = config.api_url
        self.model = config.model
        self.dimensions = config.dimensions
        self._sleep = sleep
        self._owns_client = client is None

        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout, connect=10.0)
        )

        logger.debug(f"Embedding client initialized: api_url={self.api_url}, model={self.model}")

    async def _wait(self, delay_ms: int) -> None:
        await self._sleep(delay_ms / 1000)

    async def _request(self, text: str) -> httpx.Response:
        return await self.client.post(
            self.api_url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.config.api_key}",
            },
            json={
                "model": self.model,
                "task": self.config.task,
                "dimensions": self.dimensions,
                "input": [text],
            },
        )

    def _parse_embedding(self, response: httpx.Response) -> EmbeddingVector:
        """
        Extract and validate the embedding from a successful response.

        Expected body: {"data": [{"embedding": [...]}]}
        """
        try:
            result = response.json()
        except ValueError as e:
            raise ProviderError(f"Embedding response is not valid JSON: {e}")

        data = result.get("data") if isinstance(result, dict) else None
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            logger.error(f"Invalid response structure: {response.text[:200]}")
            raise ProviderError("Invalid response format from embedding provider")

        embedding = data[0].get("embedding")
        if not isinstance(embedding, list):
            raise ProviderError("Embedding is not a list")

        if len(embedding) != self.dimensions:
            raise ProviderError(
                f"Expected {self.dimensions} dimensions, got {len(embedding)}"
            )

        try:
            return tuple(float(v) for v in embedding)
        except (TypeError, ValueError) as e:
            raise ProviderError(f"Embedding contains non-numeric values: {e}")

    async def fetch_embedding(self, text: str) -> EmbeddingVector:
        """
        Generate an embedding for the given text.

        Args:
            text: Text to embed.

        Returns:
            The embedding as a tuple of floats.

        Raises:
            ConfigError: If no API key is configured.
            ProviderError: If the provider rejects the request, keeps failing
                until the attempt budget runs out, or returns malformed data.
            httpx.TransportError: If the final attempt fails at the network level.
        """
        if not self.config.api_key:
            raise ConfigError("JINA_API_KEY environment variable is not set")

        max_attempts = self.config.max_attempts

        for attempt in range(1, max_attempts + 1):
            logger.info(f"Generating embedding (attempt {attempt}/{max_attempts})")

            # Only transport failures take the exception backoff. ProviderErrors
            # (4xx, bad shape, wrong dimensions) are raised outside the try and
            # are not retried.
            try:
                response = await self._request(text)
            except httpx.TransportError as e:
                logger.error(f"Embedding attempt {attempt} failed: {e}")

                if attempt == max_attempts:
                    logger.error("Embedding generation failed after all retries")
                    raise

                delay = network_error_delay_ms(attempt, self.config.network_error_backoff_ms)
                logger.info(f"Retrying in {delay}ms")
                await self._wait(delay)
                continue

            if not response.is_success:
                logger.error(f"Embedding API error ({response.status_code}): {response.text}")
                attempts_remain = attempt < max_attempts

                if response.status_code == 429 and attempts_remain:
                    delay = rate_limit_delay_ms(attempt, self.config.rate_limit_backoff_ms)
                    logger.info(f"Rate limited, waiting {delay}ms")
                    await self._wait(delay)
                    continue

                if response.status_code >= 500 and attempts_remain:
                    delay = self.config.server_error_backoff_ms
                    logger.info(f"Server error, retrying in {delay}ms")
                    await self._wait(delay)
                    continue

                raise ProviderError(
                    "Embedding API request failed",
                    status=response.status_code,
                    body=response.text,
                )

            embedding = self._parse_embedding(response)
            logger.info(f"Embedding generated successfully ({len(embedding)} dimensions)")
            return embedding

        raise ProviderError("Failed to generate embedding after all retries")

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()


class SkillsEmbeddingCache:
    """Single-slot store for the user skills embedding. Never expires."""

    def __init__(self):
        self._value: Optional[EmbeddingVector] = None

    def get(self) -> Optional[EmbeddingVector]:
        return self._value

    def set(self, value: EmbeddingVector) -> None:
        self._value = value

    def clear(self) -> None:
        self._value = None


class PreferenceStore(Protocol):
    def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        ...


class SkillsEmbedder:
    """
    Builds and caches the embedding of a user's skills.

    The cache holds one vector regardless of user_id: once populated, every
    call returns it until reset() is called. Use one SkillsEmbedder (and
    cache) per user when serving several users.

    There is no lock around the cache. Two concurrent callers may both miss
    and both fetch; the later write wins, and the values are expected to be
    equal.
    """

    def __init__(
        self,
        client: EmbeddingClient,
        store: PreferenceStore,
        cache: Optional[SkillsEmbeddingCache] = None,
    ):
        self.client = client
        self.store = store
        self.cache = cache if cache is not None else SkillsEmbeddingCache()

    async def get_user_skills_embedding(self, user_id: str) -> EmbeddingVector:
        """
        Return the embedding for a user's skills, computing it on first use.

        Args:
            user_id: Identifier of the preference record to read.

        Raises:
            ConfigError: If the user has no preferences or no skills.
        """
        cached = self.cache.get()
        if cached is not None:
            logger.info("Using cached user skills embedding")
            return cached

        prefs = self.store.get_preferences(user_id)
        if prefs is None or not prefs.skills:
            raise ConfigError(
                f"User preferences not set for '{user_id}'. "
                "Please configure your skills in the database."
            )

        skills_text = ", ".join(prefs.skills)
        logger.info(f"Generating embedding for user skills: {skills_text}")

        embedding = await self.client.fetch_embedding(skills_text)
        self.cache.set(embedding)
        return embedding

    def reset(self) -> None:
        """Clear the cached embedding so the next call recomputes it."""
        self.cache.clear()
        logger.debug("User skills embedding cache cleared")
