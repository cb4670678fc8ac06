"""Tests for GitPublisher retry and strategy escalation."""

from __future__ import annotations

import subprocess

import pytest

from site_autoenhance.domain.exceptions import PublishFailure
from site_autoenhance.infrastructure.config import PublisherConfig
from site_autoenhance.infrastructure.publisher import (
    CommitAndPush,
    GitPublisher,
    NullPublisher,
    RebaseAndPush,
    RetryPolicy,
    build_publisher,
)


class FakeGit:
    """Records git invocations.

    Commands whose argv starts with a key in *failures* exit non-zero the
    given number of times; calls whose index is in *fail_calls* always do.
    """

    def __init__(
        self,
        failures: dict[tuple[str, ...], int] | None = None,
        fail_calls: set[int] | None = None,
        timeout_on: tuple[str, ...] | None = None,
    ) -> None:
        self.failures = dict(failures or {})
        self.fail_calls = set(fail_calls or ())
        self.timeout_on = timeout_on
        self.calls: list[list[str]] = []
        self.kwargs: list[dict] = []

    def __call__(self, args, **kwargs):
        index = len(self.calls)
        self.calls.append(list(args))
        self.kwargs.append(kwargs)
        if index in self.fail_calls:
            return subprocess.CompletedProcess(args, 1, stdout="nothing to commit", stderr="")
        if self.timeout_on is not None and tuple(args[: len(self.timeout_on)]) == self.timeout_on:
            raise subprocess.TimeoutExpired(args, kwargs.get("timeout"))
        for prefix, remaining in self.failures.items():
            if tuple(args[: len(prefix)]) == prefix and remaining > 0:
                self.failures[prefix] = remaining - 1
                return subprocess.CompletedProcess(args, 1, stdout="", stderr="rejected")
        return subprocess.CompletedProcess(args, 0, stdout="", stderr="")


@pytest.fixture
def sleeps() -> list[float]:
    return []


def _publisher(runner: FakeGit, sleeps: list[float], **kwargs) -> GitPublisher:
    return GitPublisher(
        "/srv/site",
        runner=runner,
        sleep=sleeps.append,
        **kwargs,
    )


class TestGitPublisher:
    def test_primary_strategy_on_success(self, sleeps: list[float]) -> None:
        git = FakeGit()
        _publisher(git, sleeps).publish(["css/style.css"], "Auto-enhance: layout")

        assert git.calls == [
            ["git", "add", "--", "css/style.css"],
            ["git", "commit", "-m", "Auto-enhance: layout"],
            ["git", "push", "origin", "HEAD:main"],
        ]
        assert sleeps == []
        assert all(kw["cwd"] == "/srv/site" for kw in git.kwargs)
        assert all(kw["timeout"] == 60.0 for kw in git.kwargs)

    def test_failed_push_escalates_to_rebase_strategy(self, sleeps: list[float]) -> None:
        git = FakeGit(failures={("git", "push"): 1})
        _publisher(git, sleeps, policy=RetryPolicy(max_attempts=2, backoff_seconds=5.0)).publish(
            ["index.html"], "msg"
        )

        assert git.calls[3:] == [
            ["git", "add", "-A"],
            ["git", "commit", "-m", "msg"],
            ["git", "pull", "--rebase", "--autostash", "origin", "main"],
            ["git", "push", "origin", "HEAD:main"],
        ]
        assert sleeps == [5.0]

    def test_nothing_to_commit_tolerated_on_alternate(self, sleeps: list[float]) -> None:
        # call 2 is the first push, call 4 the second (optional) commit
        git = FakeGit(fail_calls={2, 4})
        _publisher(git, sleeps).publish(["index.html"], "msg")
        assert len(git.calls) == 7
        assert git.calls[-1] == ["git", "push", "origin", "HEAD:main"]

    def test_all_attempts_fail(self, sleeps: list[float]) -> None:
        git = FakeGit(failures={("git", "push"): 10})
        publisher = _publisher(git, sleeps, policy=RetryPolicy(max_attempts=3, backoff_seconds=1.0))
        with pytest.raises(PublishFailure) as excinfo:
            publisher.publish(["index.html"], "msg")
        assert excinfo.value.attempts == 3
        assert excinfo.value.paths == ("index.html",)
        assert sleeps == [1.0, 2.0]

    def test_timeout_is_a_failed_attempt(self, sleeps: list[float]) -> None:
        git = FakeGit(timeout_on=("git", "push"))
        with pytest.raises(PublishFailure, match="timed out"):
            _publisher(git, sleeps, timeout_seconds=1.5).publish(["index.html"], "msg")

    def test_missing_git_binary(self, sleeps: list[float]) -> None:
        def runner(args, **kwargs):
            raise FileNotFoundError("git")

        with pytest.raises(PublishFailure, match="could not start"):
            GitPublisher("/srv/site", runner=runner, sleep=sleeps.append).publish(["a.css"], "m")

    def test_custom_remote_and_branch(self, sleeps: list[float]) -> None:
        git = FakeGit()
        _publisher(git, sleeps, remote="deploy", branch="gh-pages").publish(["a.css"], "m")
        assert git.calls[-1] == ["git", "push", "deploy", "HEAD:gh-pages"]

    def test_requires_a_strategy(self) -> None:
        with pytest.raises(ValueError):
            GitPublisher("/srv/site", strategies=())


class TestRetryPolicy:
    def test_strategy_index_saturates(self) -> None:
        policy = RetryPolicy(max_attempts=4)
        assert [policy.strategy_index(a, 2) for a in range(4)] == [0, 1, 1, 1]

    def test_exponential_backoff(self) -> None:
        policy = RetryPolicy(backoff_seconds=2.0)
        assert [policy.delay_after(a) for a in range(3)] == [2.0, 4.0, 8.0]

    def test_validation(self) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)
        with pytest.raises(ValueError):
            RetryPolicy(backoff_seconds=-1)


class TestStrategies:
    def test_commit_and_push_stages_only_paths(self) -> None:
        commands = CommitAndPush().commands(["a.css", "b.js"], "m", "origin", "main")
        assert commands[0].args == ("git", "add", "--", "a.css", "b.js")
        assert all(c.required for c in commands)

    def test_rebase_and_push_commit_is_optional(self) -> None:
        commands = RebaseAndPush().commands(["a.css"], "m", "origin", "main")
        assert [c.required for c in commands] == [True, False, True, True]


class TestBuildPublisher:
    def test_none_kind(self) -> None:
        assert isinstance(build_publisher(PublisherConfig(kind="none"), "."), NullPublisher)

    def test_git_kind(self) -> None:
        assert isinstance(build_publisher(PublisherConfig(), "."), GitPublisher)

    def test_null_publisher_does_nothing(self) -> None:
        NullPublisher().publish(["a.css"], "m")
