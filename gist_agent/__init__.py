"""
Gist Agent: turns trend records into AI-narrated news gists.

Components, leaves first: cache store, source aggregator, content generator,
image resolver, publisher and batch orchestrator.
"""

__version__ = "1.0.0"
