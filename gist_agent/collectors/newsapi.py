"""NewsAPI.org provider."""

from typing import Any, Dict, List

from gist_agent.collectors.base import NewsProvider, register_provider
from gist_agent.types import SourceArticle


@register_provider
class NewsAPIProvider(NewsProvider):
    """Searches the NewsAPI ``/v2/everything`` endpoint."""

    name = "NewsAPI"
    endpoint = "https://newsapi.org/v2/everything"

    def build_params(self, topic: str) -> Dict[str, Any]:
        return {
            "q": topic,
            "language": "en",
            "sortBy": "publishedAt",
            "pageSize": self.page_size,
            "apiKey": self.api_key,
        }

    def parse(self, payload: Dict[str, Any]) -> List[SourceArticle]:
        articles = []
        for entry in payload.get("articles") or []:
            source = entry.get("source") or {}
            article = self._article(
                title=entry.get("title"),
                description=entry.get("description"),
                content=entry.get("content"),
                url=entry.get("url"),
                image=entry.get("urlToImage"),
                source=source.get("name") or self.name,
                published_at=entry.get("publishedAt"),
            )
            if article:
                articles.append(article)
        return articles
