"""The Guardian content API provider."""

from typing import Any, Dict, List

from gist_agent.collectors.base import NewsProvider, register_provider
from gist_agent.types import SourceArticle


@register_provider
class GuardianProvider(NewsProvider):
    """Searches the Guardian ``/search`` endpoint with body text fields."""

    name = "The Guardian"
    endpoint = "https://content.guardianapis.com/search"

    def build_params(self, topic: str) -> Dict[str, Any]:
        return {
            "q": topic,
            "order-by": "newest",
            "page-size": self.page_size,
            "show-fields": "trailText,bodyText,thumbnail",
            "api-key": self.api_key,
        }

    def error_message(self, payload: Any, status: int) -> str:
        # Errors are nested under "response"
        if isinstance(payload, dict) and isinstance(payload.get("response"), dict):
            message = payload["response"].get("message")
            if message:
                return str(message)
        return super().error_message(payload, status)

    def parse(self, payload: Dict[str, Any]) -> List[SourceArticle]:
        results = (payload.get("response") or {}).get("results") or []
        articles = []
        for entry in results:
            fields = entry.get("fields") or {}
            article = self._article(
                title=entry.get("webTitle"),
                description=fields.get("trailText"),
                content=fields.get("bodyText"),
                url=entry.get("webUrl"),
                image=fields.get("thumbnail"),
                source=self.name,
                published_at=entry.get("webPublicationDate"),
            )
            if article:
                articles.append(article)
        return articles
