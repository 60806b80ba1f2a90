"""
Web Search Service

Question answering through the Perplexity search API. Without an API key
the service returns canned results so the voice flow still works end to
end on a bench setup.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import aiohttp

from oled_bridge.core.logging_utils import get_module_logger

logger = get_module_logger("WebSearchService")

DEFAULT_API_URL = "https://api.perplexity.ai"
DEFAULT_TIMEOUT = 15.0
MAX_RESULTS = 3

ANSWER_DISPLAY_LIMIT = 150
SOURCE_TITLE_LIMIT = 20


@dataclass
class SearchSource:
    title: str
    url: str = ""
    snippet: str = ""


@dataclass
class SearchResponse:
    success: bool
    answer: str = ""
    sources: List[SearchSource] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error}
        return {
            "success": True,
            "results": {
                "answer": self.answer,
                "sources": [
                    {"title": s.title, "url": s.url, "snippet": s.snippet}
                    for s in self.sources
                ],
            },
        }


class WebSearchService:
    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

        if not self.api_key:
            logger.warning(
                "Perplexity API key not configured; web search will return mock results"
            )

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def search_web(self, query: str) -> SearchResponse:
        logger.info("Performing web search: %r", query)

        if not self.api_key:
            return self.mock_search_results(query)

        payload = {
            "query": query,
            "max_results": MAX_RESULTS,
            "include_answer": True,
            "include_images": False,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            session = await self._get_session()
            async with session.post(f"{self.api_url}/search", json=payload, headers=headers) as resp:
                resp.raise_for_status()
                data = await resp.json()
        except asyncio.CancelledError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error("Error in web search: %s", e)
            return SearchResponse(success=False, error=str(e) or type(e).__name__)

        sources = [
            SearchSource(
                title=item.get("title") or "",
                url=item.get("url") or "",
                snippet=item.get("snippet") or "",
            )
            for item in data.get("results") or []
        ]
        logger.info("Found %d results for query: %r", len(sources), query)
        return SearchResponse(success=True, answer=data.get("answer") or "", sources=sources)

    def mock_search_results(self, query: str) -> SearchResponse:
        logger.warning("Using mock search results (no API key)")
        return SearchResponse(
            success=True,
            answer=(
                f'This is a simulated answer about "{query}". To enable real search, '
                "set PERPLEXITY_API_KEY in the configuration."
            ),
            sources=[
                SearchSource(
                    title="Sample Source 1",
                    url="https://example.com/1",
                    snippet="This is a sample search result. Add a Perplexity API key for real results.",
                ),
                SearchSource(
                    title="Sample Source 2",
                    url="https://example.com/2",
                    snippet="Another sample result for demonstration purposes.",
                ),
            ],
        )


def format_results_for_display(response: SearchResponse) -> str:
    """Render a search response as multi-line OLED text."""
    if not response.success:
        return f"Search error: {response.error}"

    text = ""
    if response.answer:
        text += f"{response.answer[:ANSWER_DISPLAY_LIMIT]}...\n\n"

    if response.sources:
        text += "Sources:\n"
        for index, source in enumerate(response.sources, start=1):
            text += f"{index}. {source.title[:SOURCE_TITLE_LIMIT]}\n"

    return text
