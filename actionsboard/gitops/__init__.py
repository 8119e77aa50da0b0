from actionsboard.gitops.github_rest import GitHubActionsClient, GitHubApiError, GitHubRateLimitError

__all__ = ["GitHubActionsClient", "GitHubApiError", "GitHubRateLimitError"]
