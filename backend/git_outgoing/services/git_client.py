"""Read-only git queries against a single working copy."""

import asyncio
import logging
import os
import subprocess
from collections.abc import Iterator
from pathlib import Path

from git_outgoing.core.errors import (
    CommitNotFoundError,
    DivergenceUnavailableError,
    GitError,
    InvalidRangeError,
    NotARepositoryError,
    NoUpstreamError,
    ProcessExecutionFailedError,
)
from git_outgoing.models.git import ChangeKind, Commit, FileChange, TrackedFile

logger = logging.getLogger(__name__)

LOG_FORMAT = "--format=%H%x09%s"
REFLOG_FORMAT = "--format=%H%x09%gs"
DETACHED_HEAD = "HEAD"

_UNRESOLVED_MARKERS = (
    "unknown revision",
    "bad revision",
    "bad object",
    "ambiguous argument",
    "not a valid object name",
    "invalid object name",
    "needed a single revision",
)


def _is_unresolved(stderr: str) -> bool:
    lowered = stderr.lower()
    return any(marker in lowered for marker in _UNRESOLVED_MARKERS)


def parse_log(output: str) -> Iterator[Commit]:
    """Parse ``git log --format=%H%x09%s`` output, newest first.

    Lines without a tab separator are skipped with a warning.
    """
    for line in output.splitlines():
        if not line.strip():
            continue
        if "\t" not in line:
            logger.warning(f"Skipping unparseable log line: {line!r}")
            continue
        commit_id, summary = line.split("\t", 1)
        commit_id = commit_id.strip()
        if not commit_id:
            logger.warning(f"Skipping log line without commit id: {line!r}")
            continue
        yield Commit(id=commit_id, summary=summary)


def parse_name_status(output: str) -> list[FileChange]:
    """Parse ``--name-status`` output into unique FileChange records."""
    files: list[FileChange] = []
    seen: set[str] = set()
    for line in output.splitlines():
        if not line.strip():
            continue
        fields = line.split("\t")
        if len(fields) < 2:
            logger.warning(f"Skipping unparseable status line: {line!r}")
            continue

        status = fields[0].strip()
        change_kind = ChangeKind.from_status(status)
        previous_path: str | None = None
        if change_kind in (ChangeKind.RENAMED, ChangeKind.COPIED) and len(fields) >= 3:
            previous_path = fields[1]
            path = fields[2]
        else:
            path = fields[-1]

        if not path or path in seen:
            continue
        seen.add(path)
        files.append(FileChange(path=path, change_kind=change_kind, previous_path=previous_path))
    return files


class GitClient:
    """Issues git commands scoped to one repository root.

    Every public query is a coroutine; the git process itself runs in the
    default executor so other work keeps going while it runs.
    """

    def __init__(
        self,
        repo_path: str | Path,
        git_executable: str = "git",
        timeout: float = 10.0,
        remote_name: str = "origin",
    ) -> None:
        self._repo_path = Path(repo_path)
        self._git_executable = git_executable
        self._timeout = timeout
        self._remote_name = remote_name

    @property
    def repo_path(self) -> Path:
        return self._repo_path

    @property
    def remote_name(self) -> str:
        return self._remote_name

    def _run_git(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        """Run a git command and return the completed process."""
        env = {**os.environ, "LC_ALL": "C", "GIT_TERMINAL_PROMPT": "0"}
        try:
            return subprocess.run(
                [self._git_executable, "-c", "core.quotepath=off", *args],
                cwd=self._repo_path,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self._timeout,
                env=env,
            )
        except subprocess.TimeoutExpired as e:
            logger.warning(f"Git command timed out: git {' '.join(args)}")
            raise ProcessExecutionFailedError(
                f"git {args[0]} timed out after {self._timeout}s", exit_code=-1
            ) from e
        except OSError as e:
            logger.warning(f"Git command failed to start: {e}")
            raise ProcessExecutionFailedError(
                f"could not run git in {self._repo_path}", exit_code=-1, stderr=str(e)
            ) from e

    async def _git(self, *args: str) -> subprocess.CompletedProcess[str]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._run_git, list(args))

    def _failure(self, args: tuple[str, ...], result: subprocess.CompletedProcess[str]) -> GitError:
        """Build the generic error for a failed command."""
        stderr = result.stderr.strip()
        if "not a git repository" in stderr.lower():
            return NotARepositoryError(f"{self._repo_path} is not a git working copy", stderr)
        return ProcessExecutionFailedError(
            f"git {args[0]} failed", exit_code=result.returncode, stderr=stderr
        )

    async def git_dir(self) -> Path:
        """Absolute path of the repository metadata directory."""
        args = ("rev-parse", "--absolute-git-dir")
        result = await self._git(*args)
        if result.returncode != 0:
            raise self._failure(args, result)
        return Path(result.stdout.strip())

    async def current_branch(self) -> str:
        """Name of the checked-out branch (``HEAD`` when detached)."""
        args = ("rev-parse", "--abbrev-ref", "HEAD")
        result = await self._git(*args)
        if result.returncode != 0:
            raise self._failure(args, result)
        return result.stdout.strip()

    async def upstream_ref(self, branch: str) -> str:
        """Remote tracking ref of a branch, e.g. ``origin/main``.

        Uses the configured upstream, falling back to ``<remote>/<branch>``
        when that ref exists.

        Raises:
            NoUpstreamError: If neither is available, or HEAD is detached.
        """
        if branch == DETACHED_HEAD:
            raise NoUpstreamError("HEAD is detached")

        args = ("rev-parse", "--abbrev-ref", "--symbolic-full-name", f"{branch}@{{upstream}}")
        result = await self._git(*args)
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
        if "not a git repository" in result.stderr.lower():
            raise self._failure(args, result)

        fallback = f"{self._remote_name}/{branch}"
        probe = await self._git(
            "rev-parse", "--verify", "--quiet", f"refs/remotes/{fallback}^{{commit}}"
        )
        if probe.returncode == 0:
            return fallback

        raise NoUpstreamError(f"branch {branch!r} has no upstream", result.stderr.strip())

    async def merge_base(self, local_ref: str, remote_ref: str) -> str:
        """Most recent common ancestor of two refs."""
        args = ("merge-base", local_ref, remote_ref)
        result = await self._git(*args)
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip().splitlines()[0]

        stderr = result.stderr.strip()
        if result.returncode == 1 and not stderr:
            raise DivergenceUnavailableError(
                f"{local_ref} and {remote_ref} share no common history"
            )
        if _is_unresolved(stderr):
            raise NoUpstreamError(f"cannot resolve {local_ref} or {remote_ref}", stderr)
        raise self._failure(args, result)

    async def log_range(
        self,
        from_exclusive: str | None,
        to_inclusive: str,
        max_count: int | None = None,
    ) -> Iterator[Commit]:
        """Commits in ``(from_exclusive, to_inclusive]``, newest first.

        With ``from_exclusive=None`` all history reachable from
        ``to_inclusive`` is listed. The returned iterator is single-pass.
        """
        rev = f"{from_exclusive}..{to_inclusive}" if from_exclusive else to_inclusive
        args: list[str] = ["log", LOG_FORMAT]
        if max_count is not None:
            args.extend(["-n", str(max_count)])
        args.extend([rev, "--"])

        result = await self._git(*args)
        if result.returncode != 0:
            stderr = result.stderr.strip()
            if _is_unresolved(stderr):
                raise InvalidRangeError(f"invalid log range {rev}", stderr)
            raise self._failure(tuple(args), result)
        return parse_log(result.stdout)

    async def changed_files(self, commit_id: str) -> list[FileChange]:
        """Files touched by a single commit with their change kinds."""
        args = ("show", "--name-status", "--format=", "-M", commit_id, "--")
        result = await self._git(*args)
        if result.returncode != 0:
            stderr = result.stderr.strip()
            if _is_unresolved(stderr):
                raise CommitNotFoundError(f"commit {commit_id} not found", stderr)
            raise self._failure(args, result)
        return parse_name_status(result.stdout)

    async def list_files(self, ref: str) -> list[TrackedFile]:
        """All files in the tree at ``ref``."""
        args = ("ls-tree", "-r", "--name-only", ref)
        result = await self._git(*args)
        if result.returncode != 0:
            stderr = result.stderr.strip()
            if _is_unresolved(stderr):
                raise InvalidRangeError(f"cannot list files at {ref}", stderr)
            raise self._failure(args, result)
        return [TrackedFile(path=line) for line in result.stdout.splitlines() if line.strip()]

    async def resolve_ref(self, ref: str) -> str:
        """Object id of the commit ``ref`` points at."""
        args = ("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
        result = await self._git(*args)
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
        if result.returncode == 1 or _is_unresolved(result.stderr):
            raise InvalidRangeError(f"cannot resolve {ref}", result.stderr.strip())
        raise self._failure(args, result)

    async def last_reflog_entry(self, ref: str = "HEAD") -> str | None:
        """Most recent reflog entry of ``ref`` as ``<id>\\t<subject>``."""
        args = ("reflog", "show", "-n", "1", REFLOG_FORMAT, ref)
        result = await self._git(*args)
        if result.returncode != 0:
            stderr = result.stderr.strip()
            if _is_unresolved(stderr):
                raise InvalidRangeError(f"no reflog for {ref}", stderr)
            raise self._failure(args, result)
        entry = result.stdout.strip()
        return entry.splitlines()[0] if entry else None

    async def show_file(self, ref: str, path: str) -> str:
        """Text content of ``path`` at ``ref``; empty if it does not exist there."""
        args = ("show", f"{ref}:{path}")
        result = await self._git(*args)
        if result.returncode != 0:
            if "not a git repository" in result.stderr.lower():
                raise self._failure(args, result)
            logger.debug(f"No content for {path} at {ref}: {result.stderr.strip()}")
            return ""
        return result.stdout
