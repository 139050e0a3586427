import unittest
from pathlib import Path

import pytest

from commit_explainer.runner import ExecutionError
from commit_explainer.vcs.git_client import SHOW_HEAD_ARGS, GitClient
from helpers import FakeRunner, failed, ok


SHOW_CMD = tuple(["git"] + SHOW_HEAD_ARGS)

COMMIT = """commit 3f2a1b7c9d
Author: Jane Doe <jane@example.com>
Date:   Mon Oct 19 10:00:00 2026 +0200

    Add retry-free health check

 src/app.py | 2 ++
 1 file changed, 2 insertions(+)

diff --git a/src/app.py b/src/app.py
+def health_check():
+    return True"""


class TestGitClient(unittest.TestCase):
    def test_get_latest_commit_trims_output(self) -> None:
        runner = FakeRunner({SHOW_CMD: ok(stdout="\n\n" + COMMIT + "\n  \n")})
        client = GitClient(runner)
        self.assertEqual(client.get_latest_commit(), COMMIT)

    def test_get_latest_commit_runs_git_show_with_forwarded_stderr(self) -> None:
        runner = FakeRunner({SHOW_CMD: ok(stdout=COMMIT)})
        GitClient(runner, timeout=12).get_latest_commit()
        self.assertEqual(len(runner.calls), 1)
        args, timeout, forward_stderr = runner.calls[0]
        self.assertEqual(args, ["git", "show", "--stat", "--patch", "HEAD"])
        self.assertEqual(timeout, 12)
        self.assertTrue(forward_stderr)

    def test_get_latest_commit_empty_output(self) -> None:
        runner = FakeRunner({SHOW_CMD: ok(stdout="")})
        with self.assertRaises(ExecutionError) as ctx:
            GitClient(runner).get_latest_commit()
        self.assertIn("empty git show output", str(ctx.exception))

    def test_get_latest_commit_whitespace_only_output(self) -> None:
        runner = FakeRunner({SHOW_CMD: ok(stdout=" \n\t\n ")})
        with self.assertRaises(ExecutionError):
            GitClient(runner).get_latest_commit()

    def test_get_latest_commit_non_zero_exit(self) -> None:
        runner = FakeRunner({SHOW_CMD: failed(returncode=128)})
        with self.assertRaises(ExecutionError) as ctx:
            GitClient(runner).get_latest_commit()
        self.assertIn("exit status 128", str(ctx.exception))

    def test_get_latest_commit_non_zero_exit_ignores_stdout(self) -> None:
        runner = FakeRunner({SHOW_CMD: failed(returncode=128, stdout=COMMIT)})
        with self.assertRaises(ExecutionError):
            GitClient(runner).get_latest_commit()

    def test_get_latest_commit_git_missing(self) -> None:
        runner = FakeRunner({})
        with self.assertRaises(ExecutionError) as ctx:
            GitClient(runner).get_latest_commit()
        self.assertIn("git", str(ctx.exception))


def test_find_repo_root_from_nested_directory(tmp_path: Path):
    repo = tmp_path / "repo"
    (repo / ".git").mkdir(parents=True)
    nested = repo / "sub" / "dir"
    nested.mkdir(parents=True)
    assert GitClient.find_repo_root(nested) == repo.resolve()


def test_find_repo_root_outside_repository(tmp_path: Path, monkeypatch):
    # Pretend nothing up the tree has a .git entry
    monkeypatch.setattr("pathlib.Path.exists", lambda self: False)
    assert GitClient.find_repo_root(tmp_path) is None


@pytest.mark.parametrize("stdout", ["x", "  x  ", "\nx\n"])
def test_get_latest_commit_single_line(stdout):
    runner = FakeRunner({SHOW_CMD: ok(stdout=stdout)})
    assert GitClient(runner).get_latest_commit() == "x"
