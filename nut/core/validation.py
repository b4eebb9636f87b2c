"""Validation of import arguments."""

from typing import List, Optional, Tuple

from .errors import (
    InvalidArgumentCombination,
    InvalidRepositoryName,
    QueryAndPositionalArgsConflict,
)


def validate_import_args(query: Optional[str], full_repository_names: List[str]) -> None:
    """Require exactly one of a search query or repository names."""
    if query and full_repository_names:
        raise QueryAndPositionalArgsConflict()
    if not query and not full_repository_names:
        raise InvalidArgumentCombination()


def parse_repository_name(full_name: str) -> Tuple[str, str]:
    """Split an ``owner/repo`` name.

    Raises:
        InvalidRepositoryName: If the name is not exactly two non-empty parts
    """
    parts = full_name.split('/')
    if len(parts) != 2 or not all(parts):
        raise InvalidRepositoryName(full_name)
    return parts[0], parts[1]
