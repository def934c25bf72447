from __future__ import annotations


class InvalidInput(ValueError):
    """Raised when an input has the wrong shape to be scored or planned at all."""
