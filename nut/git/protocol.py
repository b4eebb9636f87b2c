"""Git protocol preference and credentials, looked up through the gh CLI."""

import logging
import subprocess
from enum import Enum
from typing import Optional

from ..core.errors import MissingGitHubToken

logger = logging.getLogger('nut')

DEFAULT_HOST = "github.com"


class GitProtocol(Enum):
    """Protocol used to clone repositories."""
    HTTPS = "https"
    SSH = "ssh"

    def to_clone_url(self, host: str, full_name: str) -> str:
        """Build the clone URL for a repository on a host.

        Args:
            host: Git host, e.g. github.com
            full_name: Repository full name (owner/repo)

        Returns:
            Clone URL for this protocol
        """
        if self is GitProtocol.SSH:
            return f"git@{host}:{full_name}.git"
        return f"https://{host}/{full_name}.git"


def _gh_output(*args: str) -> Optional[str]:
    """Run gh and return its trimmed output, or None if unavailable."""
    try:
        result = subprocess.run(
            ["gh", *args],
            capture_output=True,
            text=True,
            check=False
        )
    except OSError:
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def get_git_protocol(host: str) -> Optional[GitProtocol]:
    """Get the git protocol configured in gh for a host.

    Returns:
        The configured protocol, or None if gh is missing or has no setting
    """
    protocol = _gh_output("config", "get", "git_protocol", "-h", host)
    try:
        return GitProtocol(protocol) if protocol else None
    except ValueError:
        logger.debug(f"Ignoring unknown git protocol from gh: {protocol}")
        return None


def get_git_protocol_with_fallback(host: str) -> GitProtocol:
    """Get the git protocol from gh, falling back to HTTPS."""
    return get_git_protocol(host) or GitProtocol.HTTPS


def get_auth_token() -> Optional[str]:
    """Get a GitHub token from ``gh auth token``."""
    return _gh_output("auth", "token") or None


def get_token_with_fallback(provided_token: Optional[str]) -> str:
    """Get a GitHub token.

    Uses the provided token when set, otherwise asks gh.

    Raises:
        MissingGitHubToken: If neither source has a token
    """
    if provided_token:
        return provided_token

    token = get_auth_token()
    if not token:
        raise MissingGitHubToken(
            "No GitHub token provided and gh CLI is not authenticated. "
            "Either provide --github-token, set GITHUB_TOKEN or run 'gh auth login'"
        )
    return token
