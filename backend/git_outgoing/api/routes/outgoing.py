import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query

from git_outgoing.core.errors import (
    CommitNotFoundError,
    GitError,
    InvalidRangeError,
    NotARepositoryError,
    NoUpstreamError,
)
from git_outgoing.models.git import DiffSides, FileChange, Listing, PushState
from git_outgoing.models.tree import Category, TreeNode
from git_outgoing.services.outgoing_service import outgoing_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["outgoing"])


def _http_error(e: GitError) -> HTTPException:
    """Translate a git failure into an HTTP error."""
    if isinstance(e, CommitNotFoundError | InvalidRangeError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, NoUpstreamError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, NotARepositoryError):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


@router.get("/categories")
async def list_categories() -> list[TreeNode]:
    return outgoing_service.view.get_root_categories()


@router.get("/categories/{category}")
async def list_category_items(category: str) -> list[TreeNode]:
    """Rows of one root category."""
    try:
        parsed = Category(category)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=f"Unknown category: {category}") from e
    return await outgoing_service.view.get_items_for_category(parsed)


@router.post("/refresh")
async def refresh() -> dict[str, int | str]:
    change = await outgoing_service.view.request_refresh()
    return {"status": "refreshed", "generation": change.generation}


@router.get("/push-state")
async def get_push_state() -> PushState:
    return outgoing_service.view.push_state


@router.post("/push-state/update")
async def update_push_state() -> PushState:
    """Recompute the push marker and refresh the view."""
    return await outgoing_service.view.request_push_state_update()


@router.get("/commits/{commit_id}/files")
async def list_commit_files(commit_id: str) -> Listing[FileChange]:
    """Files touched by a commit, for picking one to diff."""
    return await outgoing_service.engine.commit_files(commit_id)


@router.get("/diff/file")
async def get_file_diff(path: Annotated[str, Query(min_length=1)]) -> DiffSides:
    """Diff a file between the remote tracking ref and the branch tip."""
    try:
        return await outgoing_service.diffs.file_diff(path)
    except GitError as e:
        logger.warning(f"Error showing diff for file {path}: {e}")
        raise _http_error(e) from e


@router.get("/diff/commit/{commit_id}")
async def get_commit_diff(
    commit_id: str, path: Annotated[str, Query(min_length=1)]
) -> DiffSides:
    """Diff a file before and after a commit."""
    try:
        return await outgoing_service.diffs.commit_diff(commit_id, path)
    except GitError as e:
        logger.warning(f"Error showing commit diff {commit_id} for {path}: {e}")
        raise _http_error(e) from e
