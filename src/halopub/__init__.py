"""halopub — keep Markdown documents in sync with Halo CMS posts."""

__version__ = "0.1.0"
