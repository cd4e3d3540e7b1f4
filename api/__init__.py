"""HTTP API for the gist pipeline: publish, batch trigger and admin endpoints."""

__version__ = "1.0.0"
