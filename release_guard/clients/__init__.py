"""Clients for remote collaborators"""

from .analysis import AnalysisClient, SonarQubeClient, RetryingAnalysisClient
from .vcs import CommitStatusClient, GitHubStatusClient

__all__ = [
    "AnalysisClient",
    "SonarQubeClient",
    "RetryingAnalysisClient",
    "CommitStatusClient",
    "GitHubStatusClient",
]
