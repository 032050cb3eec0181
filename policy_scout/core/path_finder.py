import logging
from collections import deque
from typing import Deque, List, Tuple

from policy_scout.adapters.aws_orgs import CHILD_TYPE_ACCOUNT, CHILD_TYPE_OU, AWSOrganizationsAdapter
from policy_scout.core.nodes import NodeFactory
from policy_scout.models.org import OrgNode, PathResult

logger = logging.getLogger(__name__)


class PathFinder:
    """
    Finds the single Root -> OU -> ... -> Account path for one account.

    Breadth-first over OUs only, since accounts never have children. Account
    IDs are unique in an organization, so the first match is the only match;
    the search order just decides how many parents we inspect first.
    """
    def __init__(self, adapter: AWSOrganizationsAdapter, factory: NodeFactory):
        self.adapter = adapter
        self.factory = factory

    def find_path(self, root: OrgNode, target_account_id: str) -> PathResult:
        # Each entry is (parent ID, IDs from the Root down to and including that parent)
        queue: Deque[Tuple[str, List[str]]] = deque([(root.id, [root.id])])
        explored = 0

        while queue:
            parent_id, path = queue.popleft()
            explored += 1

            account_ids = self.adapter.list_children(parent_id, CHILD_TYPE_ACCOUNT)
            ou_ids = self.adapter.list_children(parent_id, CHILD_TYPE_OU)

            if target_account_id in account_ids:
                logger.info(f"Found {target_account_id} after inspecting {explored} parent(s)")
                nodes = self._build_nodes(root, path, target_account_id)
                return PathResult(target_id=target_account_id, nodes=nodes, explored=explored)

            for ou_id in ou_ids:
                queue.append((ou_id, path + [ou_id]))

        logger.info(f"{target_account_id} not found after inspecting {explored} parent(s)")
        return PathResult(target_id=target_account_id, explored=explored)

    def _build_nodes(self, root: OrgNode, path: List[str], account_id: str) -> List[OrgNode]:
        """Names are only looked up for the winning path, not for every OU we walked through."""
        nodes = [root]
        for ou_id in path[1:]:
            nodes.append(self.factory.ou(ou_id, parent_id=nodes[-1].id))
        nodes.append(self.factory.account(account_id, parent_id=nodes[-1].id))
        return nodes
