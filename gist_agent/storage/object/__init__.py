"""Durable object storage backends."""
