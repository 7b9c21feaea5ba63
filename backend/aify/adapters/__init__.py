"""Adapters for external systems (payment, image generation, metrics)."""
