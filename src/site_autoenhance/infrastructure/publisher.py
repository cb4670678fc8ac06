"""Publishing mutated artifacts.

A :class:`Publisher` durably records a change somewhere outside the working
tree.  :class:`GitPublisher` commits and pushes with git; every command runs
with a bounded timeout, and a failed attempt is retried according to a
:class:`RetryPolicy` that also selects a broader strategy for later
attempts.  :class:`NullPublisher` only logs.

Publishing never rolls back local state: when every attempt fails the caller
gets a :class:`PublishFailure` and keeps the already written artifact.
"""

from __future__ import annotations

import logging
import subprocess
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from site_autoenhance.domain.exceptions import PublishFailure
from site_autoenhance.infrastructure.config import PublisherConfig

logger = logging.getLogger(__name__)


class Publisher(ABC):
    """Port for shipping a set of changed artifacts."""

    @abstractmethod
    def publish(self, paths: Sequence[str], message: str) -> None:
        """Publish *paths* with *message*.  Raises :class:`PublishFailure`."""


class NullPublisher(Publisher):
    """Publisher that records nothing; used for dry runs."""

    def publish(self, paths: Sequence[str], message: str) -> None:
        logger.info("Publishing disabled; would publish %s: %s", list(paths), message)


# ===================================================================== #
#  Retry policy                                                          #
# ===================================================================== #


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with exponential backoff and strategy escalation.

    Attributes
    ----------
    max_attempts:
        Total attempts, including the first one.
    backoff_seconds:
        Base delay; attempt *n* (0-based) is followed by
        ``backoff_seconds * 2 ** n`` seconds of sleep before the next one.
    """

    max_attempts: int = 2
    backoff_seconds: float = 5.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.backoff_seconds < 0:
            raise ValueError(
                f"backoff_seconds must be >= 0, got {self.backoff_seconds}"
            )

    def delay_after(self, attempt: int) -> float:
        return self.backoff_seconds * (2 ** attempt)

    def strategy_index(self, attempt: int, available: int) -> int:
        """The first attempt uses the primary strategy, later ones the next broader one."""
        return min(attempt, available - 1)


# ===================================================================== #
#  Git strategies                                                        #
# ===================================================================== #


@dataclass(frozen=True)
class GitCommand:
    """One git invocation; ``required`` commands fail the attempt on error."""

    args: tuple[str, ...]
    required: bool = True


class PublishStrategy(ABC):
    """Produces the git command sequence for one publish attempt."""

    name: str = ""

    @abstractmethod
    def commands(
        self,
        paths: Sequence[str],
        message: str,
        remote: str,
        branch: str,
    ) -> list[GitCommand]:
        ...


class CommitAndPush(PublishStrategy):
    """Stage exactly the changed paths, commit and push."""

    name = "commit-and-push"

    def commands(
        self,
        paths: Sequence[str],
        message: str,
        remote: str,
        branch: str,
    ) -> list[GitCommand]:
        return [
            GitCommand(("git", "add", "--", *paths)),
            GitCommand(("git", "commit", "-m", message)),
            GitCommand(("git", "push", remote, f"HEAD:{branch}")),
        ]


class RebaseAndPush(PublishStrategy):
    """Broader sequence: stage everything, tolerate an existing commit,
    rebase onto the remote and push."""

    name = "rebase-and-push"

    def commands(
        self,
        paths: Sequence[str],
        message: str,
        remote: str,
        branch: str,
    ) -> list[GitCommand]:
        return [
            GitCommand(("git", "add", "-A")),
            GitCommand(("git", "commit", "-m", message), required=False),
            GitCommand(("git", "pull", "--rebase", "--autostash", remote, branch)),
            GitCommand(("git", "push", remote, f"HEAD:{branch}")),
        ]


DEFAULT_STRATEGIES: tuple[PublishStrategy, ...] = (CommitAndPush(), RebaseAndPush())

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


class _AttemptFailed(Exception):
    pass


class GitPublisher(Publisher):
    """Commit and push changed artifacts with git.

    Parameters
    ----------
    repo_dir:
        Working tree the commands run in.
    policy:
        Retry policy; defaults to two attempts.
    strategies:
        Ordered from narrowest to broadest.
    timeout_seconds:
        Upper bound for each git command.
    remote, branch:
        Push target.
    runner, sleep:
        Injection points for ``subprocess.run`` and ``time.sleep``.
    """

    def __init__(
        self,
        repo_dir: str | Path,
        policy: RetryPolicy | None = None,
        strategies: Sequence[PublishStrategy] = DEFAULT_STRATEGIES,
        timeout_seconds: float = 60.0,
        remote: str = "origin",
        branch: str = "main",
        runner: Runner = subprocess.run,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not strategies:
            raise ValueError("GitPublisher requires at least one strategy")
        self._repo_dir = Path(repo_dir)
        self._policy = policy or RetryPolicy()
        self._strategies = tuple(strategies)
        self._timeout = timeout_seconds
        self._remote = remote
        self._branch = branch
        self._run = runner
        self._sleep = sleep

    def publish(self, paths: Sequence[str], message: str) -> None:
        last_error = ""
        for attempt in range(self._policy.max_attempts):
            strategy = self._strategies[
                self._policy.strategy_index(attempt, len(self._strategies))
            ]
            try:
                for command in strategy.commands(paths, message, self._remote, self._branch):
                    self._execute(command)
            except _AttemptFailed as exc:
                last_error = str(exc)
                logger.warning(
                    "Publish attempt %d/%d (%s) failed: %s",
                    attempt + 1,
                    self._policy.max_attempts,
                    strategy.name,
                    last_error,
                )
                if attempt + 1 < self._policy.max_attempts:
                    self._sleep(self._policy.delay_after(attempt))
                continue
            logger.info("Published %s via %s", list(paths), strategy.name)
            return

        raise PublishFailure(
            f"Publishing failed after {self._policy.max_attempts} attempts: {last_error}",
            attempts=self._policy.max_attempts,
            paths=tuple(paths),
        )

    def _execute(self, command: GitCommand) -> None:
        logger.debug("Executing: %s", " ".join(command.args))
        try:
            result = self._run(
                list(command.args),
                cwd=str(self._repo_dir),
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            raise _AttemptFailed(
                f"'{' '.join(command.args)}' timed out after {self._timeout}s"
            ) from None
        except OSError as exc:
            raise _AttemptFailed(f"'{' '.join(command.args)}' could not start: {exc}") from exc

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            if command.required:
                raise _AttemptFailed(
                    f"'{' '.join(command.args)}' exited {result.returncode}: {detail}"
                )
            logger.debug("Ignoring non-zero exit of optional command: %s", detail)


def build_publisher(config: PublisherConfig, repo_dir: str | Path) -> Publisher:
    """Create the publisher described by *config*."""
    if config.kind == "none":
        return NullPublisher()
    return GitPublisher(
        repo_dir,
        policy=RetryPolicy(
            max_attempts=config.max_attempts,
            backoff_seconds=config.backoff_seconds,
        ),
        timeout_seconds=config.timeout_seconds,
        remote=config.remote,
        branch=config.branch,
    )
