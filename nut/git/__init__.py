"""Multi-repository git orchestration."""

from .apply import apply_command, apply_script
from .clone import ClonePipeline
from .parallel import clone_parallel
from .repository import find_repositories
from .status import get_all_repos_status, get_repo_status

__all__ = [
    'apply_command',
    'apply_script',
    'ClonePipeline',
    'clone_parallel',
    'find_repositories',
    'get_all_repos_status',
    'get_repo_status',
]
