"""Typed failures raised by git queries."""


class GitError(Exception):
    """Base class for failures of a git query."""

    def __init__(self, message: str, stderr: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.stderr = stderr

    def __str__(self) -> str:
        if self.stderr:
            return f"{self.message}: {self.stderr}"
        return self.message


class NotARepositoryError(GitError):
    """The configured path is not inside a git working copy."""


class NoUpstreamError(GitError):
    """The branch has no remote tracking reference."""


class DivergenceUnavailableError(GitError):
    """No common ancestor could be found (disjoint or shallow history)."""


class InvalidRangeError(GitError):
    """An endpoint of a log range does not resolve."""


class CommitNotFoundError(GitError):
    """The requested commit does not exist."""


class ProcessExecutionFailedError(GitError):
    """git exited with an unexpected status, timed out, or could not start."""

    def __init__(self, message: str, exit_code: int, stderr: str = "") -> None:
        super().__init__(message, stderr)
        self.exit_code = exit_code

    def __str__(self) -> str:
        return f"{super().__str__()} (exit code {self.exit_code})"
