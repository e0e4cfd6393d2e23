"""DesignFlow: portfolio sync and attention inbox for GitHub repositories."""

__version__ = "1.0.0"
