"""LLM Lint - local LLM code review surfaced as editor diagnostics."""

__version__ = "0.1.0"
