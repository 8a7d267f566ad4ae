"""Adaptive signal scoring and pattern learning for small-business inboxes."""

__version__ = "0.1.0"
