"""Claude-powered code review for Azure DevOps pull requests."""

__version__ = "1.0.0"
