"""Exception hierarchy for oss-finder.

All exceptions inherit from OssFinderError (single catch point).
GitHub error messages are shown to end users, so they carry the remediation
steps alongside the failure.
"""

TOKEN_SETTINGS_URL = "https://github.com/settings/tokens/new"


class OssFinderError(Exception):
    """Base exception for all oss-finder errors."""


class GitHubError(OssFinderError):
    """Error communicating with the GitHub REST or GraphQL API."""


class GitHubAuthError(GitHubError):
    """GitHub rejected the request credentials (401/403)."""

    @classmethod
    def from_token_state(cls, has_token: bool, detail: str = "") -> "GitHubAuthError":
        reason = (
            "GitHub token lacks the required permissions"
            if has_token
            else "No GitHub token provided"
        )
        message = (
            f"{reason}. Please:\n"
            f"1. Generate a token at {TOKEN_SETTINGS_URL}\n"
            "2. Enable these scopes: public_repo, read:org, read:user\n"
            "3. Set it as GITHUB_TOKEN in your environment or .env file\n"
            "4. Restart the service"
        )
        if detail:
            message += f"\nGitHub said: {detail}"
        return cls(message)


class GitHubRateLimitError(GitHubError):
    """GitHub signalled that the request quota is exhausted."""

    @classmethod
    def from_token_state(cls, has_token: bool, detail: str = "") -> "GitHubRateLimitError":
        message = (
            "GitHub API rate limit exceeded. Please:\n"
            "1. Wait a few minutes and try again\n"
            f"2. {'Check the quota of your GitHub token' if has_token else 'Or add a GitHub personal access token (GITHUB_TOKEN) to increase limits'}\n"
            "3. Without a token: 60 requests/hour\n"
            "4. With a token: 5000 requests/hour"
        )
        if detail:
            message += f"\nGitHub said: {detail}"
        return cls(message)


class GitHubAPIError(GitHubError):
    """Any other GitHub failure; carries the backend message."""


class TranslationError(OssFinderError):
    """Remote query translation failed; callers fall back to heuristics."""
