"""Mediastack news provider."""

from typing import Any, Dict, List

from gist_agent.collectors.base import NewsProvider, register_provider
from gist_agent.types import SourceArticle


@register_provider
class MediastackProvider(NewsProvider):
    """Queries the Mediastack ``/v1/news`` endpoint."""

    name = "Mediastack"
    # Free plan only serves plain http
    endpoint = "http://api.mediastack.com/v1/news"

    def build_params(self, topic: str) -> Dict[str, Any]:
        return {
            "access_key": self.api_key,
            "keywords": topic,
            "languages": "en",
            "limit": self.page_size,
            "sort": "published_desc",
        }

    def parse(self, payload: Dict[str, Any]) -> List[SourceArticle]:
        articles = []
        for entry in payload.get("data") or []:
            article = self._article(
                title=entry.get("title"),
                description=entry.get("description"),
                # Mediastack has no full text; the description doubles as content
                content=entry.get("description"),
                url=entry.get("url"),
                image=entry.get("image"),
                source=entry.get("source") or self.name,
                published_at=entry.get("published_at"),
            )
            if article:
                articles.append(article)
        return articles
