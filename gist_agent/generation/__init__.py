"""Gist content generation."""

from gist_agent.generation.generator import ContentGenerator

__all__ = ["ContentGenerator"]
