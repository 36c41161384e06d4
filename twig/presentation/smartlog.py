"""
Smartlog — Render a CommitGraph as text

Output is a stability contract: tests compare it byte for byte.

    O f777ecc9 (master) create initial.txt
    |\\
    | o 62fc20d2 create test1.txt
    |
    @ fe65c1fe (> initial) create test2.txt

Row: <glyph> <short id> [markers] [(branches)] <summary>

Roots (main-branch commits and parentless drafts) are drawn top to bottom,
ancestors first. A root is preceded by a line when the previous root is its
parent, by an elision marker when history was skipped or the root starts a
disconnected component.
"""

import logging
from typing import List, Optional, Set

from ..errors import RenderError
from ..core.graph import CommitGraph, CommitGraphNode
from ..core.visibility import HiddenReason
from ..services.git import short_id
from .symbols import SymbolSet, ASCII, sanitize_control_chars

logger = logging.getLogger(__name__)


CURRENT_BRANCH_MARKER = "> "
REMOTE_BRANCH_MARKER = "remote "


class SmartlogRenderer:
    """
    Stateless apart from the glyph set.

    Usage:
        text = SmartlogRenderer(symbols).render(graph)
    """

    def __init__(self, symbols: SymbolSet = ASCII):
        self.symbols = symbols

    def render(self, graph: CommitGraph) -> str:
        """Full smartlog, newline-terminated; empty string for an empty graph."""
        lines = self.render_lines(graph)
        return "".join(line + "\n" for line in lines)

    def render_lines(self, graph: CommitGraph) -> List[str]:
        lines: List[str] = []
        roots = graph.root_oids

        for index, root in enumerate(roots):
            connector = self._root_connector(graph, roots, index)
            if connector is not None:
                lines.append(connector)

            following = self._root_connector(graph, roots, index + 1)
            self._render_tree(graph, root, "", following, set(), lines)

        return lines

    def _root_connector(self, graph: CommitGraph, roots: List[str], index: int) -> Optional[str]:
        """Row drawn above roots[index], or None if nothing goes there."""
        if index >= len(roots):
            return None
        node = graph[roots[index]]
        if index == 0:
            return self.symbols.elision if node.parents else None
        if roots[index - 1] in node.parents:
            return self.symbols.line
        return self.symbols.elision

    def _render_tree(
        self,
        graph: CommitGraph,
        oid: str,
        prefix: str,
        following: Optional[str],
        path: Set[str],
        lines: List[str],
    ):
        """
        Draw oid and its descendants.

        following is the connector toward the next root (only for a root);
        when set, every child is drawn as a branch off the main line so the
        next root can continue below. The last child otherwise continues the
        current line, which keeps long linear stacks iterative.
        """
        path = set(path)
        current: Optional[str] = oid

        while current is not None:
            path.add(current)
            lines.append(prefix + self.format_row(graph, graph[current]))

            children = []
            for child in graph.children_of(current):
                try:
                    self._check_edge(current, child, path)
                except RenderError as e:
                    logger.warning("%s; skipping edge", e)
                    continue
                children.append(child)

            current_next: Optional[str] = None
            for position, child in enumerate(children):
                has_sibling = position < len(children) - 1
                if has_sibling or following is not None:
                    continuation = self.symbols.line if has_sibling else following
                    lines.append(prefix + self.symbols.fork)
                    self._render_tree(graph, child, prefix + continuation + " ",
                                      None, path, lines)
                else:
                    lines.append(prefix + self.symbols.line)
                    current_next = child

            current = current_next
            following = None

    @staticmethod
    def _check_edge(parent: str, child: str, path: Set[str]):
        if child in path:
            raise RenderError(
                f"Cycle in commit graph: {short_id(parent)} -> {short_id(child)}"
            )

    def format_row(self, graph: CommitGraph, node: CommitGraphNode) -> str:
        parts = [self._glyph(node), node.commit.short_id]
        parts.extend(self.markers(node))

        labels = self.branch_labels(graph, node)
        if labels:
            parts.append(f"({', '.join(labels)})")

        summary = sanitize_control_chars(node.commit.summary)
        if summary:
            parts.append(summary)
        return " ".join(parts)

    def _glyph(self, node: CommitGraphNode) -> str:
        if node.is_main:
            hidden = (node.verdict.is_hidden and node.verdict.reason != HiddenReason.PUBLIC) \
                or node.rewritten_as is not None
        else:
            hidden = node.verdict.is_hidden
        return self.symbols.node(node.is_head, node.is_main, hidden)

    @staticmethod
    def markers(node: CommitGraphNode) -> List[str]:
        markers = []
        reason = node.verdict.reason
        if reason == HiddenReason.MANUALLY_HIDDEN:
            markers.append("(manually hidden)")
        if node.rewritten_as is not None:
            markers.append(f"(rewritten as {short_id(node.rewritten_as)})")

        if not markers:
            if reason == HiddenReason.UNREACHABLE:
                markers.append("(unreachable)")
            elif reason == HiddenReason.PUBLIC and node.has_record:
                markers.append("(public)")
        return markers

    @staticmethod
    def branch_labels(graph: CommitGraph, node: CommitGraphNode) -> List[str]:
        local = sorted(branch.name for branch in node.branches if not branch.is_remote)
        remote = sorted(branch.name for branch in node.branches if branch.is_remote)

        labels = []
        for name in local:
            if node.is_head and name == graph.head_branch:
                labels.append(CURRENT_BRANCH_MARKER + name)
            else:
                labels.append(name)
        labels.extend(REMOTE_BRANCH_MARKER + name for name in remote)
        return labels
