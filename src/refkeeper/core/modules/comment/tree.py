"""Threaded reply reconstruction from flat comment records."""

import math
from collections import defaultdict
from collections.abc import Iterable, Mapping

from refkeeper.core.modules.comment.models import Comment, CommentNode


def chronological_key(comment: Comment) -> tuple[float, str]:
    """Oldest first, ties broken by id; comments without a timestamp yet sort last."""
    created = comment.created_at.timestamp() if comment.created_at else math.inf
    return created, comment.id


def build_comment_tree(comments: Iterable[Comment]) -> list[CommentNode]:
    """Turn the flat comments of one root into a forest of reply threads.

    A comment whose parent is not among the input (deleted, or never existed)
    becomes a top-level node instead of being dropped. Every input comment
    appears exactly once; a duplicated id keeps its oldest record.
    """
    nodes: dict[str, CommentNode] = {}
    for comment in sorted(comments, key=chronological_key):
        nodes.setdefault(comment.id, CommentNode(comment=comment))

    roots: list[CommentNode] = []
    for node in nodes.values():
        parent_id = node.comment.parent_id
        parent = nodes.get(parent_id) if parent_id and parent_id != node.comment.id else None
        if parent is None:
            roots.append(node)
        else:
            parent.replies.append(node)

    # Comments on a parent cycle are unreachable from any root; promote the oldest member of each cycle
    reachable = _reachable_ids(roots)
    if len(reachable) < len(nodes):
        for node in nodes.values():
            if node.comment.id in reachable:
                continue
            promoted = _oldest_on_cycle(node, nodes)
            parent = nodes[promoted.comment.parent_id or ""]
            parent.replies = [reply for reply in parent.replies if reply.comment.id != promoted.comment.id]
            roots.append(promoted)
            reachable |= _reachable_ids([promoted])
        roots.sort(key=lambda n: chronological_key(n.comment))

    return roots


def _oldest_on_cycle(node: CommentNode, nodes: dict[str, CommentNode]) -> CommentNode:
    # Following parents from an unreachable node always ends on a cycle
    visited: set[str] = set()
    current = node
    while current.comment.id not in visited:
        visited.add(current.comment.id)
        current = nodes[current.comment.parent_id or ""]

    cycle = [current]
    member = nodes[current.comment.parent_id or ""]
    while member.comment.id != current.comment.id:
        cycle.append(member)
        member = nodes[member.comment.parent_id or ""]
    return min(cycle, key=lambda n: chronological_key(n.comment))


def _reachable_ids(roots: list[CommentNode]) -> set[str]:
    seen: set[str] = set()
    stack = list(roots)
    while stack:
        node = stack.pop()
        if node.comment.id in seen:
            continue
        seen.add(node.comment.id)
        stack.extend(node.replies)
    return seen


def collect_descendants(parent_ids: Mapping[str, str | None], comment_id: str) -> list[str]:
    """Return ``comment_id`` followed by the ids of all its transitive replies.

    ``parent_ids`` maps each comment id of a root to its parent comment id.
    Works from parent pointers alone, so replies are found even when the
    comment itself no longer exists.
    """
    children: dict[str, list[str]] = defaultdict(list)
    for child_id, parent_id in parent_ids.items():
        if parent_id:
            children[parent_id].append(child_id)

    found = [comment_id]
    seen = {comment_id}
    queue = [comment_id]
    while queue:
        current = queue.pop(0)
        for child_id in children[current]:
            if child_id not in seen:
                seen.add(child_id)
                found.append(child_id)
                queue.append(child_id)
    return found
