"""Directory service implementations."""

from flow_registry.directories.github import GitHubDirectory

__all__ = ["GitHubDirectory"]
