"""Run the clone pipeline for many repositories with bounded concurrency."""

import os
import logging
from typing import List, Optional
from concurrent.futures import ThreadPoolExecutor, as_completed

from .clone import ClonePipeline
from ..core.errors import CloneFailures, InvalidParallelCount, NutError
from ..core.types import CloneInfo, OperationResult, Status
from ..utils.progress import ProgressTracker

logger = logging.getLogger('nut')


def _clone_one(
    pipeline: ClonePipeline,
    workspace_dir: 'os.PathLike[str]',
    info: CloneInfo
) -> OperationResult:
    try:
        return pipeline.clone(workspace_dir, info)
    except (NutError, OSError) as e:
        logger.error(f"Failed to clone {info.full_name}: {e}")
        return OperationResult(
            status=Status.FAILED,
            message=str(e),
            repo=info.full_name,
            error=e
        )


def _log_result(result: OperationResult) -> None:
    if result.success:
        logger.info(f"✓ {result.repo}: {result.message}")
    elif result.skipped:
        logger.info(f"⊘ {result.repo}: {result.message}")
    else:
        logger.error(f"✗ {result.repo}: {result.message}")


def clone_parallel(
    workspace_dir: 'os.PathLike[str]',
    repos: List[CloneInfo],
    parallel_count: int,
    pipeline: ClonePipeline,
    progress: Optional[ProgressTracker] = None
) -> List[OperationResult]:
    """Clone many repositories, at most parallel_count at a time.

    Each clone runs on a worker thread, so one slow clone never holds up
    the others; a finished clone immediately frees its worker for the
    next queued repository. A failed clone does not cancel the rest.

    Args:
        workspace_dir: Workspace root
        repos: Repositories to clone
        parallel_count: Maximum number of clones in flight
        pipeline: Clone pipeline to run for each repository
        progress: Optional tracker updated as clones finish

    Returns:
        One result per repository, in completion order

    Raises:
        InvalidParallelCount: If parallel_count is less than 1
        CloneFailures: After all clones finished, if any of them failed
    """
    if parallel_count < 1:
        raise InvalidParallelCount(parallel_count)

    logger.info(f"Cloning {len(repos)} repositories with {parallel_count} workers")

    results: List[OperationResult] = []
    with ThreadPoolExecutor(max_workers=parallel_count) as executor:
        future_to_repo = {
            executor.submit(_clone_one, pipeline, workspace_dir, info): info
            for info in repos
        }

        for future in as_completed(future_to_repo):
            result = future.result()
            results.append(result)
            _log_result(result)
            if progress:
                progress.update(result, current_repo=result.repo)

    if progress:
        progress.finish()

    failures = [r for r in results if r.failed]
    if failures:
        raise CloneFailures(failures, results=results)
    return results
