from .web_search import (
    SearchResponse,
    SearchSource,
    WebSearchService,
    format_results_for_display,
)

__all__ = [
    'SearchResponse',
    'SearchSource',
    'WebSearchService',
    'format_results_for_display',
]
