"""Configuration management for nut."""

import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass

from .core.errors import CreateDirectoryFailed
from .core.github_client import DEFAULT_API_URL
from .git.protocol import DEFAULT_HOST

DEFAULT_PARALLEL = 8


def _home() -> Path:
    return Path(os.getenv('HOME') or os.getenv('USERPROFILE') or Path.home())


@dataclass
class Config:
    """Configuration for nut.

    Merges environment variables with CLI arguments.
    CLI arguments take precedence over environment variables.
    """

    data_dir: Path
    cache_dir: Path
    git_host: str = DEFAULT_HOST
    parallel: int = DEFAULT_PARALLEL
    github_token: Optional[str] = None
    github_api_url: str = DEFAULT_API_URL
    log_dir: Optional[str] = None
    entered_workspace: Optional[str] = None

    @classmethod
    def from_env_and_args(
        cls,
        token: Optional[str] = None,
        parallel: Optional[int] = None
    ) -> 'Config':
        """Create config from environment variables and CLI arguments.

        CLI arguments override environment variables.

        Args:
            token: GitHub token (overrides GITHUB_TOKEN)
            parallel: Clone concurrency ceiling (overrides NUT_PARALLEL)

        Returns:
            Config instance

        Raises:
            ValueError: If NUT_PARALLEL is not an integer
        """
        home = _home()
        data_dir = os.getenv('NUT_DATA_DIR') or home / '.local' / 'share' / 'nut'
        cache_dir = os.getenv('NUT_CACHE_DIR') or home / '.cache' / 'nut'

        if parallel is None:
            env_parallel = os.getenv('NUT_PARALLEL')
            parallel = int(env_parallel) if env_parallel else DEFAULT_PARALLEL

        return cls(
            data_dir=Path(data_dir),
            cache_dir=Path(cache_dir),
            git_host=os.getenv('NUT_GIT_HOST') or DEFAULT_HOST,
            parallel=parallel,
            github_token=token or os.getenv('GITHUB_TOKEN'),
            github_api_url=os.getenv('GITHUB_API_URL') or DEFAULT_API_URL,
            log_dir=os.getenv('NUT_LOG_DIR'),
            entered_workspace=os.getenv('NUT_WORKSPACE_ID')
        )

    def ensure_dirs(self) -> None:
        """Create the data and cache directories if they are missing."""
        for path in (self.data_dir, self.cache_dir):
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise CreateDirectoryFailed(path, e) from e
