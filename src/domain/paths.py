"""Path Resolver - parent-scoped lookup of answer nodes.

A path (``linkId``) is only meaningful inside its parent group. Resolution
therefore looks at the direct children of one explicit scope (the tree root
or a given group node) and never searches the whole tree: two distinct
groups that reuse a child path, such as two ``telecom`` groups each holding a
``telecom.value``, must not cross-bind.

Example:
    ```python
    for telecom in resolve(tree, "telecom"):
        value = resolve_scalar(tree, "telecom.value", parent=telecom)
    ```
"""

from typing import Optional, Union

from src.domain.answer_tree import AnswerNode, AnswerTree

Scope = Union[AnswerTree, AnswerNode]


def resolve(tree: Scope, path: str, parent: Optional[AnswerNode] = None) -> list[AnswerNode]:
    """Return every node with ``link_id == path`` directly under the scope.

    Parameters:
        tree: The answer tree (or a node used as the root scope)
        path: Link id to match
        parent: Group to search under; defaults to the root of ``tree``

    Returns:
        Matching nodes in tree order (several for repeated groups, possibly none)
    """
    scope = parent if parent is not None else tree
    return [node for node in scope.children if node.link_id == path]


def resolve_scalar(tree: Scope, path: str, parent: Optional[AnswerNode] = None) -> Optional[AnswerNode]:
    """Return the first node matching ``path`` in scope, for known-singular fields."""
    scope = parent if parent is not None else tree
    return next((node for node in scope.children if node.link_id == path), None)
