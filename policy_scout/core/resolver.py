"""
Effective SCP resolution.

SCPs flow down from the Root to every OU and account below it. To know what
applies to an account we walk *up* its parent chain and collect what is
attached at each level. Sibling accounts share most of that chain, so both the
parent links and the per-node attachments are memoized for the lifetime of a
single run.
"""
import logging
import threading
from typing import Dict, List, Optional

from policy_scout.adapters.aws_orgs import AWSOrganizationsAdapter
from policy_scout.core.errors import HierarchyError

logger = logging.getLogger(__name__)

ROOT_TYPE = "ROOT"


def dedupe_policies(names: List[str]) -> List[str]:
    """Drops repeated policy names, keeping the first (nearest) occurrence."""
    seen = set()
    unique = []
    for name in names:
        if name not in seen:
            seen.add(name)
            unique.append(name)
    return unique


class PolicyResolver:
    """
    Resolves the direct + inherited policies of any node.
    One instance per invocation; the caches are lock-guarded so the workflow
    can resolve sibling accounts from worker threads.
    """
    def __init__(self, adapter: AWSOrganizationsAdapter, root_id: Optional[str] = None):
        self.adapter = adapter
        self.root_id = root_id
        self._direct_cache: Dict[str, List[str]] = {}
        self._parent_cache: Dict[str, Optional[str]] = {}
        self._lock = threading.Lock()
        if root_id:
            self._parent_cache[root_id] = None

    def remember_parent(self, node_id: str, parent_id: Optional[str]) -> None:
        """Seeds the parent cache with a link already seen during traversal."""
        with self._lock:
            self._parent_cache.setdefault(node_id, parent_id)

    def direct_policies(self, node_id: str) -> List[str]:
        with self._lock:
            if node_id in self._direct_cache:
                return list(self._direct_cache[node_id])

        names = self.adapter.list_policies_for_target(node_id)

        # Single writer wins; a concurrent fetch of the same node returns identical data.
        with self._lock:
            return list(self._direct_cache.setdefault(node_id, names))

    def parent_of(self, node_id: str) -> Optional[str]:
        """
        Returns the parent ID, or None when `node_id` is the Root.
        A tree node has exactly one parent; zero or several means the hierarchy is broken.
        """
        with self._lock:
            if node_id in self._parent_cache:
                return self._parent_cache[node_id]

        parents = self.adapter.list_parents(node_id)
        if len(parents) != 1:
            raise HierarchyError(
                "list_parents", node_id, f"expected exactly one parent, found {len(parents)}"
            )

        parent = parents[0]
        parent_id = parent["Id"]
        with self._lock:
            self._parent_cache.setdefault(node_id, parent_id)
            if parent["Type"] == ROOT_TYPE:
                self._parent_cache.setdefault(parent_id, None)
                if self.root_id is None:
                    self.root_id = parent_id
            return self._parent_cache[node_id]

    def ancestors(self, node_id: str) -> List[str]:
        """The chain from `node_id` up to and including the Root, nearest first."""
        chain = [node_id]
        seen = {node_id}
        current = node_id

        while current != self.root_id:
            parent_id = self.parent_of(current)
            if parent_id is None:
                break
            if parent_id in seen:
                raise HierarchyError("list_parents", node_id, f"parent cycle detected at {parent_id}")
            chain.append(parent_id)
            seen.add(parent_id)
            current = parent_id

        return chain

    def resolve(self, node_id: str) -> List[str]:
        """
        Effective policies for `node_id`: its own, then each ancestor's, deduplicated.
        The Root only returns what is attached to it directly.
        """
        collected: List[str] = []
        for ancestor_id in self.ancestors(node_id):
            collected.extend(self.direct_policies(ancestor_id))

        policies = dedupe_policies(collected)
        logger.debug(f"Resolved {len(policies)} policies for {node_id}")
        return policies


class ManagementAccountDetector:
    """
    Answers "is this the management account?".
    DescribeOrganization is called once per run, not once per account.
    """
    def __init__(self, adapter: AWSOrganizationsAdapter):
        self.adapter = adapter
        self._management_id: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def management_account_id(self) -> str:
        with self._lock:
            if self._management_id is None:
                self._management_id = self.adapter.get_management_account_id()
                logger.debug(f"Management account is {self._management_id}")
            return self._management_id

    def is_management(self, account_id: str) -> bool:
        return account_id == self.management_account_id
