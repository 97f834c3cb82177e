"""Observability: structured logging, metrics and tracing."""
