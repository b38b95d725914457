"""Ingestion layer.

This package turns raw hub invocations into typed channel events. Only
the state layer is allowed to apply them.
"""

__all__: list[str] = []
