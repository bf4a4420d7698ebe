"""Async HTTP client interceptor pipeline."""

__version__ = '0.1.0'
