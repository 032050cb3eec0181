from typing import Iterable

from policy_scout.models.org import NodeKind, TreeLine

INDENT = "    "
MANAGEMENT_SUFFIX = " (Management Account)"


def format_line(line: TreeLine) -> str:
    """
    One row of the tree, without the trailing newline:
      |-- Root: [r-xxxx]
      |-- OU: <name> [ou-xxxx-xxxxxxxx]
      |-- Account: <name> [<id>] (SCPs: a, b)
    """
    prefix = INDENT * line.depth
    node = line.node

    if node.kind == NodeKind.ROOT:
        return f"{prefix}|-- Root: [{node.id}]"
    if node.kind == NodeKind.OU:
        return f"{prefix}|-- OU: {node.name} [{node.id}]"

    name = node.name + MANAGEMENT_SUFFIX if node.is_management else node.name
    return f"{prefix}|-- Account: {name} [{node.id}] (SCPs: {', '.join(line.policies)})"


def render_lines(lines: Iterable[TreeLine]) -> str:
    return "".join(format_line(line) + "\n" for line in lines)
