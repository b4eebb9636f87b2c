"""GitHub API client providing repository metadata for cloning."""

import logging
import requests
from typing import List, Dict, Any, Optional

from .errors import GitHubApiError
from .types import CloneInfo

logger = logging.getLogger('nut')

DEFAULT_API_URL = "https://api.github.com"

# The search API serves at most this many results per query
SEARCH_RESULT_LIMIT = 1000


class GitHubClient:
    """Client for looking up repositories through the GitHub API."""

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        session: Optional[requests.Session] = None
    ):
        """Initialize GitHub client.

        Args:
            token: Optional GitHub personal access token
            api_url: Base URL of the API
            session: Optional requests session to reuse
        """
        self.token = token
        self.api_url = api_url.rstrip('/')
        self.session = session or requests.Session()
        self.headers = {'Accept': 'application/vnd.github+json'}

        if token:
            self.headers['Authorization'] = f'token {token}'
            logger.debug("Using GitHub token for authentication")
        else:
            logger.debug("Using unauthenticated mode (public repos only)")

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        url = f"{self.api_url}{path}"
        try:
            return self.session.get(url, headers=self.headers, params=params)
        except requests.RequestException as e:
            raise GitHubApiError(0, f"request to {url} failed: {e}") from e

    @staticmethod
    def _raise_for_status(response: requests.Response, what: str) -> None:
        if response.status_code == 200:
            return
        if response.status_code == 403:
            raise GitHubApiError(403, f"rate limit exceeded or access denied while fetching {what}")
        raise GitHubApiError(response.status_code, f"failed to get {what}")

    def get_repository(self, full_name: str) -> Dict[str, Any]:
        """Get a single repository.

        Args:
            full_name: Repository full name (owner/repo)

        Returns:
            Repository dictionary

        Raises:
            GitHubApiError: If the request failed
        """
        response = self._get(f"/repos/{full_name}")
        self._raise_for_status(response, f"repository {full_name}")
        return response.json()

    def search_repositories(self, query: str) -> List[Dict[str, Any]]:
        """Search repositories, following pagination.

        Broad queries are truncated to the first SEARCH_RESULT_LIMIT results.

        Args:
            query: GitHub search query, e.g. "owner:octocat language:python"

        Returns:
            List of repository dictionaries

        Raises:
            GitHubApiError: If a page could not be fetched
        """
        all_repos = []
        total_count = 0
        page = 1
        per_page = 100

        while True:
            response = self._get(
                "/search/repositories",
                params={'q': query, 'page': page, 'per_page': per_page}
            )
            self._raise_for_status(response, f"search results for '{query}'")

            data = response.json()
            items = data.get('items', [])
            if not items:
                break

            all_repos.extend(items)
            total_count = data.get('total_count', 0)
            if len(all_repos) >= min(total_count, SEARCH_RESULT_LIMIT) or len(items) < per_page:
                break
            page += 1

        if total_count > len(all_repos) >= SEARCH_RESULT_LIMIT:
            logger.warning(
                f"Query '{query}' matched {total_count} repositories; "
                f"only the first {SEARCH_RESULT_LIMIT} are available"
            )
        logger.info(f"Found {len(all_repos)} repositories for query '{query}'")
        return all_repos

    def get_latest_commit(self, full_name: str, branch: str) -> Optional[str]:
        """Get the latest commit SHA of a branch.

        Returns:
            Commit SHA, or None for empty repositories or on error
        """
        response = self._get(
            f"/repos/{full_name}/commits",
            params={'sha': branch, 'per_page': 1}
        )
        if response.status_code != 200:
            logger.debug(f"No commits for {full_name}@{branch}: {response.status_code}")
            return None
        commits = response.json()
        return commits[0]['sha'] if commits else None

    def get_clone_info(self, repo: Dict[str, Any]) -> CloneInfo:
        """Build clone metadata from a repository dictionary."""
        full_name = repo['full_name']
        default_branch = repo.get('default_branch')
        latest_commit = None
        if default_branch:
            latest_commit = self.get_latest_commit(full_name, default_branch)
        return CloneInfo(
            full_name=full_name,
            latest_commit=latest_commit,
            default_branch=default_branch
        )
