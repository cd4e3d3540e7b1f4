"""Publishing: image resolution and the publish pipeline."""

from gist_agent.publishing.images import ImageDecision, ImageResolver, resolve_image
from gist_agent.publishing.publisher import Publisher

__all__ = ["ImageDecision", "ImageResolver", "Publisher", "resolve_image"]
