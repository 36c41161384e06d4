"""
Tests for the commit graph — what the smartlog walks and how it links it

These tests validate:
- Seeds for each combination of options
- Draft walks stop at the main branch and at the horizon
- Merges link to every parent in the graph; main nodes are never linked
- Public commits carrying a rewrite or hide marker become main nodes
- Roots come out ancestors first, then by commit time
"""

import pytest

from twig.commands.smartlog_cmd import build_graph
from twig.core.events import (
    commit_created, commit_rewritten, commit_hidden, commit_unhidden, ref_updated,
)
from twig.core.graph import SmartlogOptions
from twig.core.visibility import HiddenReason
from tests.factories import number


@pytest.fixture
def stack(repo):
    """master: initial; detached HEAD: initial -> one -> two."""
    initial = repo.commit_on_head("create initial.txt")
    repo.detach()
    one = repo.commit_on_head("create one.txt")
    two = repo.commit_on_head("create two.txt")
    return initial, one, two


class TestSeeds:

    def test_single_commit(self, repo):
        initial = repo.commit_on_head("create initial.txt")

        graph = build_graph(repo, [], "master")

        assert list(graph.nodes) == [initial]
        assert graph.root_oids == [initial]
        node = graph[initial]
        assert node.is_main
        assert node.is_head
        assert [b.name for b in node.branches] == ["master"]

    def test_empty_repository(self, repo):
        graph = build_graph(repo, [], "master")

        assert len(graph) == 0
        assert graph.root_oids == []

    def test_detached_head_seeded(self, repo, stack):
        initial, one, two = stack

        graph = build_graph(repo, [], "master")

        assert set(graph.nodes) == {initial, one, two}

    def test_branches_only_skips_detached_head(self, repo, stack):
        initial, one, two = stack

        graph = build_graph(repo, [], "master", SmartlogOptions(branches_only=True))

        assert set(graph.nodes) == {initial}
        assert graph.head_oid == two

    def test_include_hidden_seeds_logged_commits(self, repo, stack):
        initial, one, two = stack
        repo.checkout("master")
        events = number([commit_created(one), commit_created(two)])

        default = build_graph(repo, events, "master")
        hidden = build_graph(repo, events, "master", SmartlogOptions(include_hidden=True))

        assert set(default.nodes) == {initial}
        assert set(hidden.nodes) == {initial, one, two}
        assert hidden[two].verdict.reason == HiddenReason.UNREACHABLE

    def test_include_hidden_skips_missing_commits(self, repo):
        initial = repo.commit_on_head("create initial.txt")
        events = number([commit_created("f" * 40), commit_hidden("e" * 40)])

        graph = build_graph(repo, events, "master", SmartlogOptions(include_hidden=True))

        assert set(graph.nodes) == {initial}

    def test_ref_updates_do_not_seed(self, repo, stack):
        initial, one, two = stack
        repo.checkout("master")
        events = number([ref_updated("refs/heads/gone", None, two)])

        graph = build_graph(repo, events, "master", SmartlogOptions(include_hidden=True))

        assert two not in graph

    def test_include_hidden_ignored_for_branches_only(self, repo, stack):
        initial, one, two = stack
        repo.checkout("master")
        events = number([commit_created(one), commit_created(two)])

        graph = build_graph(repo, events, "master",
                            SmartlogOptions(include_hidden=True, branches_only=True))

        assert set(graph.nodes) == {initial}


class TestWalk:

    def test_draft_stack_links_to_main(self, repo, stack):
        initial, one, two = stack

        graph = build_graph(repo, [], "master")

        assert graph.root_oids == [initial]
        assert graph.children_of(initial) == [one]
        assert graph.children_of(one) == [two]
        assert not graph[one].is_main
        assert graph[two].is_head

    def test_walk_stops_at_public_commit(self, repo):
        repo.commit_on_head("create initial.txt")
        base = repo.commit_on_head("create base.txt")
        repo.detach()
        one = repo.commit_on_head("create one.txt")

        graph = build_graph(repo, [], "master")

        assert set(graph.nodes) == {base, one}
        assert graph[base].is_main

    def test_merge_links_both_parents(self, repo, stack):
        initial, one, two = stack
        side = repo.commit("create side.txt", [initial])
        merged = repo.merge(side, "merge side")

        graph = build_graph(repo, [], "master")

        assert graph.parents_in_graph(merged) == [two, side]
        assert merged in graph[two].children
        assert merged in graph[side].children
        assert graph.children_of(initial) == [one, side]

    def test_horizon_bounds_walk(self, repo):
        initial = repo.commit_on_head("create initial.txt")
        repo.detach()
        drafts = [repo.commit_on_head(f"create test{i}.txt") for i in range(5)]

        graph = build_graph(repo, [], "master", horizon=2)

        assert set(graph.nodes) == {initial, drafts[3], drafts[4]}
        assert graph.root_oids == [initial, drafts[3]]

    def test_main_nodes_never_linked(self, repo):
        first = repo.commit_on_head("create initial.txt")
        repo.create_branch("old", first)
        second = repo.commit_on_head("create second.txt")
        repo.checkout("old")
        side = repo.commit_on_head("create side.txt")

        graph = build_graph(repo, [], "master")

        assert graph[first].is_main and graph[second].is_main
        assert graph.children_of(first) == [side]
        assert graph.children_of(second) == []

    def test_rewritten_as(self, repo, stack):
        initial, one, two = stack
        old, new = repo.amend("create two.txt (amended)")
        events = number([commit_created(old), commit_rewritten(old, new)])

        graph = build_graph(repo, events, "master", SmartlogOptions(include_hidden=True))

        assert graph[old].rewritten_as == new
        assert graph[old].verdict.reason == HiddenReason.REWRITTEN
        assert graph[new].rewritten_as is None

    def test_has_record(self, repo, stack):
        initial, one, two = stack
        events = number([commit_hidden(one), commit_unhidden(one)])

        graph = build_graph(repo, events, "master")

        assert graph[one].has_record
        assert not graph[two].has_record


class TestMarkedPublicCommits:
    """Public commits with a marker of their own are kept out of the elision."""

    def test_rewritten_public_commit_becomes_main_node(self, repo):
        initial = repo.commit_on_head("create initial.txt")
        test1 = repo.commit_on_head("create test1.txt")
        test2 = repo.commit_on_head("create test2.txt")
        repo.detach(test1)
        _, amended = repo.amend("test1 version 1")
        events = number([commit_rewritten(test1, amended)])

        graph = build_graph(repo, events, "master")

        assert graph[test1].is_main
        assert graph[test1].rewritten_as == amended
        assert graph.root_oids == [initial, test1, test2]
        assert graph.children_of(initial) == [amended]

    def test_hidden_public_commit_under_branch(self, repo):
        repo.commit_on_head("create initial.txt")
        middle = repo.commit_on_head("create middle.txt")
        base = repo.commit_on_head("create base.txt")
        repo.create_branch("feature", base)
        repo.checkout("feature")
        repo.commit_on_head("create feature.txt")
        events = number([commit_hidden(middle)])

        graph = build_graph(repo, events, "master")

        assert graph[middle].is_main
        assert graph[middle].verdict.reason == HiddenReason.MANUALLY_HIDDEN
        assert graph.root_oids == [middle, base]

    def test_unmarked_public_commits_stay_elided(self, repo):
        initial = repo.commit_on_head("create initial.txt")
        test1 = repo.commit_on_head("create test1.txt")
        test2 = repo.commit_on_head("create test2.txt")
        events = number([
            commit_hidden(test1), commit_unhidden(test1),
            commit_rewritten(initial, None),
        ])

        graph = build_graph(repo, events, "master")

        assert set(graph.nodes) == {test2}

    def test_hidden_main_only_commit_stays_elided(self, repo):
        repo.commit_on_head("create initial.txt")
        test1 = repo.commit_on_head("create test1.txt")
        test2 = repo.commit_on_head("create test2.txt")

        graph = build_graph(repo, number([commit_hidden(test1)]), "master")

        assert set(graph.nodes) == {test2}


class TestRootOrder:

    def test_roots_by_commit_time(self, repo):
        first = repo.commit_on_head("create initial.txt")
        repo.create_branch("feature", first)
        second = repo.commit_on_head("create second.txt")
        repo.checkout("feature")
        repo.commit_on_head("create feature.txt")

        graph = build_graph(repo, [], "master")

        assert graph.root_oids == [first, second]

    def test_ancestor_before_descendant(self, repo):
        """Commit time is overridden when it disagrees with ancestry."""
        first = repo.commit_on_head("create initial.txt", timestamp=10)
        repo.create_branch("feature", first)
        second = repo.commit_on_head("create second.txt", timestamp=5)
        repo.checkout("feature")
        repo.commit_on_head("create feature.txt", timestamp=20)

        graph = build_graph(repo, [], "master")

        assert graph.root_oids == [first, second]

    def test_children_by_commit_time(self, repo):
        initial = repo.commit_on_head("create initial.txt")
        late = repo.commit("create late.txt", [initial], timestamp=30)
        early = repo.commit("create early.txt", [initial], timestamp=20)
        repo.create_branch("late", late)
        repo.create_branch("early", early)

        graph = build_graph(repo, [], "master")

        assert graph.children_of(initial) == [early, late]
