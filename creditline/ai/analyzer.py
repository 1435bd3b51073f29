"""Analyzer: turns free text into structured rows."""

import logging
from abc import ABC, abstractmethod

import httpx

from creditline.config import settings
from creditline.schemas.analysis import AnalysisResult, normalize_analysis
from creditline.utils.errors import AnalyzerError


class BaseAnalyzer(ABC):
    """Base class for analyzers."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    @abstractmethod
    async def analyze(self, text: str, framework: str) -> AnalysisResult:
        """Structure ``text`` according to ``framework``.

        Raises:
            AnalyzerError: If the analyzer fails
        """
        pass

    async def aclose(self) -> None:
        pass


class HttpAnalyzer(BaseAnalyzer):
    """Posts text to an analysis service and normalizes whatever comes back."""

    def __init__(self, url: str, timeout: float = 60.0, client: httpx.AsyncClient | None = None):
        super().__init__()
        self.url = url
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls) -> "HttpAnalyzer":
        return cls(url=settings.analyzer.url, timeout=settings.analyzer.timeout_seconds)

    async def analyze(self, text: str, framework: str) -> AnalysisResult:
        try:
            response = await self._client.post(self.url, json={"text": text, "framework": framework})
            response.raise_for_status()
            raw = response.json()
        except httpx.TimeoutException as e:
            self.logger.error(f"Analyzer timed out after {self.timeout}s: {e}")
            raise AnalyzerError("Analyzer timed out", status_code=504) from e
        except (httpx.HTTPError, ValueError) as e:
            self.logger.error(f"Analyzer request failed: {e}")
            raise AnalyzerError("AI failed to structure text") from e

        result = normalize_analysis(raw, framework)
        if not result.rows:
            self.logger.warning(f"Analyzer returned no rows for framework {framework}")
        return result

    async def aclose(self) -> None:
        await self._client.aclose()
