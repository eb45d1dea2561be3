"""Core pipeline: resolve, fetch, inline, orchestrate."""
