"""
Tests for smartlog rendering — output compared byte for byte

In-memory scenarios cover layout and labelling rules. The requires_git
scenarios run the real CLI against a real repository, end to end.
"""

import io
import sys

import pytest

from twig.cli import main
from twig.commands.smartlog_cmd import build_graph
from twig.core.events import commit_created, commit_rewritten, commit_hidden
from twig.core.graph import (
    CommitGraph, CommitGraphNode, SmartlogOptions,
)
from twig.presentation.smartlog import SmartlogRenderer
from twig.presentation.symbols import UNICODE
from twig.services.git import CommitInfo
from tests.factories import number, requires_git


def s(oid):
    return oid[:8]


def lines(*rows):
    return "".join(row + "\n" for row in rows)


def smartlog(repo, events=(), symbols=None, **options):
    graph = build_graph(repo, number(list(events)), "master", SmartlogOptions(**options))
    renderer = SmartlogRenderer(symbols) if symbols else SmartlogRenderer()
    return renderer.render(graph)


@pytest.fixture
def stack(repo):
    """master: initial; detached HEAD: initial -> one -> two."""
    initial = repo.commit_on_head("create initial.txt")
    repo.detach()
    one = repo.commit_on_head("create one.txt")
    two = repo.commit_on_head("create two.txt")
    return initial, one, two


class TestLayout:

    def test_single_commit(self, repo):
        initial = repo.commit_on_head("create initial.txt")

        assert smartlog(repo) == f"@ {s(initial)} (> master) create initial.txt\n"

    def test_empty_repository(self, repo):
        assert smartlog(repo) == ""

    def test_linear_stack(self, repo, stack):
        initial, one, two = stack

        assert smartlog(repo) == lines(
            f"O {s(initial)} (master) create initial.txt",
            "|",
            f"o {s(one)} create one.txt",
            "|",
            f"@ {s(two)} create two.txt",
        )

    def test_fork(self, repo):
        initial = repo.commit_on_head("create initial.txt")
        repo.create_branch("one", initial)
        repo.checkout("one")
        test1 = repo.commit_on_head("create test1.txt")
        repo.create_branch("two", initial)
        repo.checkout("two")
        test2 = repo.commit_on_head("create test2.txt")

        assert smartlog(repo) == lines(
            f"O {s(initial)} (master) create initial.txt",
            "|\\",
            f"| o {s(test1)} (one) create test1.txt",
            "|",
            f"@ {s(test2)} (> two) create test2.txt",
        )

    def test_merge_drawn_under_each_parent(self, repo):
        initial = repo.commit_on_head("create initial.txt")
        repo.create_branch("test1", initial)
        repo.checkout("test1")
        test1 = repo.commit_on_head("create test1.txt")
        repo.create_branch("test2and3", initial)
        repo.checkout("test2and3")
        test2 = repo.commit_on_head("create test2.txt")
        test3 = repo.commit_on_head("create test3.txt")
        merged = repo.merge(test1, "Merge branch 'test1' into test2and3")

        assert smartlog(repo) == lines(
            f"O {s(initial)} (master) create initial.txt",
            "|\\",
            f"| o {s(test1)} (test1) create test1.txt",
            "| |",
            f"| @ {s(merged)} (> test2and3) Merge branch 'test1' into test2and3",
            "|",
            f"o {s(test2)} create test2.txt",
            "|",
            f"o {s(test3)} create test3.txt",
            "|",
            f"@ {s(merged)} (> test2and3) Merge branch 'test1' into test2and3",
        )

    def test_adjacent_main_commits(self, repo):
        initial = repo.commit_on_head("create initial.txt")
        repo.create_branch("feature", initial)
        second = repo.commit_on_head("create second.txt")
        repo.checkout("feature")
        feature = repo.commit_on_head("create feature.txt")

        assert smartlog(repo) == lines(
            f"O {s(initial)} create initial.txt",
            "|\\",
            f"| @ {s(feature)} (> feature) create feature.txt",
            "|",
            f"O {s(second)} (master) create second.txt",
        )

    def test_elided_main_commits(self, repo):
        initial = repo.commit_on_head("create initial.txt")
        repo.create_branch("feature", initial)
        repo.commit_on_head("create test2.txt")
        test3 = repo.commit_on_head("create test3.txt")
        repo.checkout("feature")
        test1 = repo.commit_on_head("create test1.txt")
        test4 = repo.commit_on_head("create test4.txt")

        assert smartlog(repo) == lines(
            f"O {s(initial)} create initial.txt",
            "|\\",
            f": o {s(test1)} create test1.txt",
            ": |",
            f": @ {s(test4)} (> feature) create test4.txt",
            ":",
            f"O {s(test3)} (master) create test3.txt",
        )

    @pytest.mark.parametrize("interior", [1, 5, 50])
    def test_run_of_public_commits_is_one_elision_row(self, repo, interior):
        initial = repo.commit_on_head("create initial.txt")
        repo.create_branch("feature", initial)
        for i in range(interior):
            repo.commit_on_head(f"create test{i}.txt")
        tip = repo.commit_on_head("create tip.txt")
        repo.checkout("feature")
        feature = repo.commit_on_head("create feature.txt")

        assert smartlog(repo) == lines(
            f"O {s(initial)} create initial.txt",
            "|\\",
            f": @ {s(feature)} (> feature) create feature.txt",
            ":",
            f"O {s(tip)} (master) create tip.txt",
        )

    def test_history_before_first_root_elided(self, repo):
        repo.commit_on_head("create initial.txt")
        test1 = repo.commit_on_head("create test1.txt")
        test2 = repo.commit_on_head("create test2.txt")

        assert smartlog(repo) == lines(
            ":",
            f"@ {s(test2)} (> master) create test2.txt",
        )
        assert test1 not in build_graph(repo, [], "master")

    def test_disconnected_root(self, repo):
        initial = repo.commit_on_head("create initial.txt")
        repo.checkout("orphan")
        orphan = repo.commit_on_head("create orphan.txt")

        assert smartlog(repo) == lines(
            f"O {s(initial)} (master) create initial.txt",
            ":",
            f"@ {s(orphan)} (> orphan) create orphan.txt",
        )


class TestMarkers:

    def test_rewritten_commit(self, repo, stack):
        initial, one, two = stack
        old, new = repo.amend("create two.txt (amended)")
        events = [commit_created(old), commit_rewritten(old, new)]

        assert smartlog(repo, events) == lines(
            f"O {s(initial)} (master) create initial.txt",
            "|",
            f"o {s(one)} create one.txt",
            "|",
            f"@ {s(new)} create two.txt (amended)",
        )
        assert smartlog(repo, events, include_hidden=True) == lines(
            f"O {s(initial)} (master) create initial.txt",
            "|",
            f"o {s(one)} create one.txt",
            "|\\",
            f"| x {s(old)} (rewritten as {s(new)}) create two.txt",
            "|",
            f"@ {s(new)} create two.txt (amended)",
        )

    def test_manually_hidden_ancestor(self, repo, stack):
        initial, one, two = stack

        assert smartlog(repo, [commit_hidden(one)]) == lines(
            f"O {s(initial)} (master) create initial.txt",
            "|",
            f"x {s(one)} (manually hidden) create one.txt",
            "|",
            f"@ {s(two)} create two.txt",
        )

    def test_hidden_commits_disappear_when_head_moves(self, repo, stack):
        initial, one, two = stack
        events = [commit_created(one), commit_created(two), commit_hidden(two)]
        repo.checkout("master")

        assert smartlog(repo, events) == f"@ {s(initial)} (> master) create initial.txt\n"
        assert smartlog(repo, events, include_hidden=True) == lines(
            f"@ {s(initial)} (> master) create initial.txt",
            "|",
            f"x {s(one)} (unreachable) create one.txt",
            "|",
            f"x {s(two)} (manually hidden) create two.txt",
        )

    def test_hidden_head(self, repo):
        initial = repo.commit_on_head("create initial.txt")

        assert smartlog(repo, [commit_hidden(initial)]) == \
            f"@ {s(initial)} (manually hidden) (> master) create initial.txt\n"

    def test_public_marker_needs_a_record(self, repo):
        initial = repo.commit_on_head("create initial.txt")
        second = repo.commit_on_head("create second.txt")

        assert smartlog(repo, [commit_hidden(initial)], include_hidden=True) == lines(
            f"O {s(initial)} (public) create initial.txt",
            "|",
            f"@ {s(second)} (> master) create second.txt",
        )

    def test_rewritten_public_commit(self, repo):
        initial = repo.commit_on_head("create initial.txt")
        test1 = repo.commit_on_head("create test1.txt")
        test2 = repo.commit_on_head("create test2.txt")
        repo.detach(test1)
        _, version1 = repo.amend("test1 version 1")
        _, version2 = repo.amend("test1 version 2")
        events = [commit_rewritten(test1, version1), commit_rewritten(version1, version2)]

        assert smartlog(repo, events) == lines(
            f"O {s(initial)} create initial.txt",
            "|\\",
            f"| @ {s(version2)} test1 version 2",
            "|",
            f"X {s(test1)} (rewritten as {s(version2)}) create test1.txt",
            "|",
            f"O {s(test2)} (master) create test2.txt",
        )

    def test_hidden_public_commit_under_branch(self, repo):
        initial = repo.commit_on_head("create initial.txt")
        repo.create_branch("feature", initial)
        second = repo.commit_on_head("create second.txt")
        repo.checkout("feature")
        feature = repo.commit_on_head("create feature.txt")

        assert smartlog(repo, [commit_hidden(initial)]) == lines(
            f"X {s(initial)} (manually hidden) create initial.txt",
            "|\\",
            f"| @ {s(feature)} (> feature) create feature.txt",
            "|",
            f"O {s(second)} (master) create second.txt",
        )

    def test_only_branches(self, repo, stack):
        initial, one, two = stack
        repo.create_branch("feature", one)

        assert smartlog(repo, branches_only=True) == lines(
            f"O {s(initial)} (master) create initial.txt",
            "|",
            f"o {s(one)} (feature) create one.txt",
        )


class TestLabels:

    def test_remote_branches_after_local(self, repo):
        initial = repo.commit_on_head("create initial.txt")
        repo.create_branch("zeta")
        repo.create_remote_branch("origin/master", initial)

        assert smartlog(repo) == \
            f"@ {s(initial)} (> master, zeta, remote origin/master) create initial.txt\n"

    def test_current_marker_only_at_head(self, repo, stack):
        initial, one, two = stack
        repo.create_branch("feature", two)
        repo.checkout("feature")

        assert smartlog(repo).splitlines()[-1] == f"@ {s(two)} (> feature) create two.txt"

    def test_control_characters_stripped(self, repo):
        initial = repo.commit_on_head("create \x1b[31mred\x1b[0m.txt")

        assert smartlog(repo) == f"@ {s(initial)} (> master) create [31mred[0m.txt\n"


class TestGlyphs:

    def test_unicode(self, repo, stack):
        initial, one, two = stack

        assert smartlog(repo, symbols=UNICODE) == lines(
            f"◆ {s(initial)} (master) create initial.txt",
            "┃",
            f"◯ {s(one)} create one.txt",
            "┃",
            f"● {s(two)} create two.txt",
        )

    def test_cycle_edge_skipped(self, caplog):
        a = CommitInfo(oid="a" * 40, parents=[], message="a", timestamp=1)
        b = CommitInfo(oid="b" * 40, parents=["a" * 40], message="b", timestamp=2)
        nodes = {
            a.oid: CommitGraphNode(commit=a, children={b.oid}),
            b.oid: CommitGraphNode(commit=b, children={a.oid}),
        }
        graph = CommitGraph(nodes=nodes, root_oids=[a.oid])

        text = SmartlogRenderer().render(graph)

        assert text == lines("o aaaaaaaa a", "|", "o bbbbbbbb b")
        assert "Cycle in commit graph" in caplog.text


# =============================================================================
# End to end, against real git
# =============================================================================

def run_smartlog(sandbox, capsys, *flags):
    assert main(["-p", str(sandbox.path), "smartlog", *flags]) == 0
    return capsys.readouterr().out


@requires_git
class TestEndToEnd:

    def test_init_smartlog(self, sandbox, capsys):
        initial = sandbox.head()

        assert run_smartlog(sandbox, capsys) == f"@ {s(initial)} (> master) create initial.txt\n"

    def test_show_reachable_commit(self, sandbox, capsys):
        initial = sandbox.head()
        sandbox.run("checkout", "-q", "-b", "initial-branch", "master")
        test = sandbox.commit_file("test", 1)

        assert run_smartlog(sandbox, capsys) == lines(
            f"O {s(initial)} (master) create initial.txt",
            "|",
            f"@ {s(test)} (> initial-branch) create test.txt",
        )

    def test_sequential_master_commits(self, sandbox, capsys):
        sandbox.commit_file("test1", 1)
        sandbox.commit_file("test2", 2)
        test3 = sandbox.commit_file("test3", 3)

        assert run_smartlog(sandbox, capsys) == lines(
            ":",
            f"@ {s(test3)} (> master) create test3.txt",
        )

    def test_merge_commit(self, sandbox, capsys):
        initial = sandbox.head()
        sandbox.run("checkout", "-q", "-b", "test1", "master")
        test1 = sandbox.commit_file("test1", 1)
        sandbox.run("checkout", "-q", "-b", "test2and3", "master")
        test2 = sandbox.commit_file("test2", 2)
        test3 = sandbox.commit_file("test3", 3)
        sandbox.run("merge", "-q", "--no-edit", "test1", time=4)
        merged = sandbox.head()

        assert run_smartlog(sandbox, capsys) == lines(
            f"O {s(initial)} (master) create initial.txt",
            "|\\",
            f"| o {s(test1)} (test1) create test1.txt",
            "| |",
            f"| @ {s(merged)} (> test2and3) Merge branch 'test1' into test2and3",
            "|",
            f"o {s(test2)} create test2.txt",
            "|",
            f"o {s(test3)} create test3.txt",
            "|",
            f"@ {s(merged)} (> test2and3) Merge branch 'test1' into test2and3",
        )

    def test_custom_main_branch(self, sandbox, capsys):
        sandbox.run("branch", "-m", "master", "main")
        assert main(["-p", str(sandbox.path), "config", "set", "core.main_branch", "main"]) == 0
        test1 = sandbox.commit_file("test1", 1)
        sandbox.detach()
        test2 = sandbox.commit_file("test2", 2)
        capsys.readouterr()

        assert run_smartlog(sandbox, capsys) == lines(
            ":",
            f"O {s(test1)} (main) create test1.txt",
            "|",
            f"@ {s(test2)} create test2.txt",
        )

    def test_amend_recorded_by_hook(self, sandbox, capsys, monkeypatch):
        initial = sandbox.head()
        sandbox.run("checkout", "-q", "-b", "feature")
        old = sandbox.commit_file("test1", 1)
        sandbox.run("commit", "-q", "--amend", "-m", "test1 amended", time=2)
        new = sandbox.head()

        monkeypatch.setattr(sys, "stdin", io.StringIO(f"{old} {new}\n"))
        assert main(["-p", str(sandbox.path), "hook-post-rewrite", "amend"]) == 0

        assert run_smartlog(sandbox, capsys) == lines(
            f"O {s(initial)} (master) create initial.txt",
            "|",
            f"@ {s(new)} (> feature) test1 amended",
        )
        assert run_smartlog(sandbox, capsys, "--hidden") == lines(
            f"O {s(initial)} (master) create initial.txt",
            "|\\",
            f"| x {s(old)} (rewritten as {s(new)}) create test1.txt",
            "|",
            f"@ {s(new)} (> feature) test1 amended",
        )

    def test_rewritten_public_commit(self, sandbox, capsys, monkeypatch):
        initial = sandbox.head()
        test1 = sandbox.commit_file("test1", 1)
        test2 = sandbox.commit_file("test2", 2)
        sandbox.run("checkout", "-q", test1)
        sandbox.run("commit", "-q", "--amend", "-m", "test1 version 1", time=3)
        version1 = sandbox.head()
        sandbox.run("commit", "-q", "--amend", "-m", "test1 version 2", time=4)
        version2 = sandbox.head()

        monkeypatch.setattr(sys, "stdin", io.StringIO(f"{test1} {version1}\n{version1} {version2}\n"))
        assert main(["-p", str(sandbox.path), "hook-post-rewrite", "amend"]) == 0

        assert run_smartlog(sandbox, capsys) == lines(
            f"O {s(initial)} create initial.txt",
            "|\\",
            f"| @ {s(version2)} test1 version 2",
            "|",
            f"X {s(test1)} (rewritten as {s(version2)}) create test1.txt",
            "|",
            f"O {s(test2)} (master) create test2.txt",
        )

    def test_missing_main_branch_is_an_error(self, sandbox, capsys):
        sandbox.run("branch", "-m", "master", "main")

        assert main(["-p", str(sandbox.path), "smartlog"]) == 1
        assert "Main branch 'master' not found" in capsys.readouterr().err
