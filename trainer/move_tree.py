"""Move tree: ownership tree of move nodes rooted at the starting position."""

from typing import Iterator

from models import Move, TreeNode


def create_root() -> TreeNode:
    """Root node: no move, no children."""
    return TreeNode(move=None, children=[])


def create_node(move: Move) -> TreeNode:
    return TreeNode(move=move, children=[])


def build_tree_from_line(line: list[Move]) -> TreeNode:
    """Build a single-branch tree from a move list. Returns the root."""
    root = create_root()
    current = root
    for move in line:
        node = create_node(move)
        current.children.append(node)
        current = node
    return root


def same_move(a: Move, b: Move) -> bool:
    """Structural equality. A missing promotion never matches a set one."""
    return (
        a.from_square == b.from_square
        and a.to_square == b.to_square
        and a.promotion == b.promotion
    )


def find_child_by_move(node: TreeNode, move: Move) -> TreeNode | None:
    for child in node.children:
        if child.move is not None and same_move(child.move, move):
            return child
    return None


def add_variation(node: TreeNode, move: Move) -> TreeNode:
    """Append a new child unconditionally. Callers must check for duplicates."""
    child = create_node(move)
    node.children.append(child)
    return child


def mainline(root: TreeNode) -> list[Move]:
    """Moves along the first child at every branch point."""
    line = []
    node = root
    while node.children:
        node = node.children[0]
        line.append(node.move)
    return line


def iter_nodes(root: TreeNode) -> Iterator[tuple[TreeNode, list[Move]]]:
    """Depth-first pre-order walk yielding (node, moves from root to node)."""
    stack = [(root, [])]
    while stack:
        node, path = stack.pop()
        yield node, path
        for child in reversed(node.children):
            stack.append((child, path + [child.move]))


def count_nodes(root: TreeNode) -> int:
    """Number of non-root nodes."""
    return sum(1 for _ in iter_nodes(root)) - 1
