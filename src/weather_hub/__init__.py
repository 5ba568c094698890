"""Concurrent OpenWeatherMap fetcher with per-source loading state and a TTL cache."""

__version__ = "0.1.0"
