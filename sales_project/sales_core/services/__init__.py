"""
Business workflows of the document engine.

Import from the submodules (e.g. ``services.consolidation``); this package
stays import-free so models can use the pure calculators in ``tax`` and
``totals`` without a circular import.
"""
