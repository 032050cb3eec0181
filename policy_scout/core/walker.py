import logging
from typing import Iterator, List, Set, Tuple

from policy_scout.adapters.aws_orgs import CHILD_TYPE_ACCOUNT, CHILD_TYPE_OU, AWSOrganizationsAdapter
from policy_scout.core.nodes import NodeFactory
from policy_scout.models.org import OrgNode

logger = logging.getLogger(__name__)


class TreeWalker:
    """
    Visits every node of the organization exactly once.

    Order is fixed: a parent, then all of its accounts, then each child OU
    followed by that OU's whole subtree before the next sibling OU. This is
    done with one explicit stack and one visited set, so output order does
    not depend on recursion depth or on the order AWS calls complete in.
    """
    def __init__(self, adapter: AWSOrganizationsAdapter, factory: NodeFactory):
        self.adapter = adapter
        self.factory = factory
        self.visited: Set[str] = set()

    def walk(self, root: OrgNode) -> Iterator[Tuple[OrgNode, int]]:
        self.visited = {root.id}
        stack: List[Tuple[OrgNode, int]] = [(root, 0)]

        while stack:
            node, depth = stack.pop()
            yield node, depth

            if node.is_account:
                continue

            children = self._children(node)
            # Reversed so the first child is popped first
            for child in reversed(children):
                stack.append((child, depth + 1))

        logger.info(f"Walked {len(self.visited)} nodes")

    def _children(self, parent: OrgNode) -> List[OrgNode]:
        account_ids = self.adapter.list_children(parent.id, CHILD_TYPE_ACCOUNT)
        ou_ids = self.adapter.list_children(parent.id, CHILD_TYPE_OU)

        children: List[OrgNode] = []
        for account_id in account_ids:
            if self._first_visit(account_id, parent.id):
                children.append(self.factory.account(account_id, parent_id=parent.id))
        for ou_id in ou_ids:
            if self._first_visit(ou_id, parent.id):
                children.append(self.factory.ou(ou_id, parent_id=parent.id))
        return children

    def _first_visit(self, node_id: str, parent_id: str) -> bool:
        if node_id in self.visited:
            logger.warning(f"Skipping {node_id} under {parent_id}: already visited")
            return False
        self.visited.add(node_id)
        return True
