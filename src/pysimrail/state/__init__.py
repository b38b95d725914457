"""State layer.

This package is the single source of truth for how hub snapshots are
merged into the train store and how selection follows the store.
"""
