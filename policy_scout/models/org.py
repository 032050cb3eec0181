from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class NodeKind(str, Enum):
    ROOT = "ROOT"
    OU = "ORGANIZATIONAL_UNIT"
    ACCOUNT = "ACCOUNT"


@dataclass(frozen=True)
class OrgNode:
    """
    One node of the AWS Organizations tree: the Root, an OU or a member account.

    Attributes:
        id: r-xxxx, ou-xxxx-xxxxxxxx or a 12-digit account ID.
        kind: Which of the three node types this is.
        name: Display name. The Root has none.
        parent_id: ID of the single parent. None for the Root.
        is_management: True only for the organization's management account.
    """
    id: str
    kind: NodeKind
    name: str = ""
    parent_id: Optional[str] = None
    is_management: bool = False

    @classmethod
    def root(cls, root_id: str) -> "OrgNode":
        return cls(id=root_id, kind=NodeKind.ROOT)

    @property
    def is_root(self) -> bool:
        return self.kind == NodeKind.ROOT

    @property
    def is_account(self) -> bool:
        return self.kind == NodeKind.ACCOUNT


@dataclass
class TreeLine:
    """A single row of the rendered tree. `policies` is only meaningful for accounts."""
    node: OrgNode
    depth: int
    policies: List[str] = field(default_factory=list)


@dataclass
class PathResult:
    """
    Outcome of a root-to-account search.
    An empty `nodes` list means the account is not in the organization.
    """
    target_id: str
    nodes: List[OrgNode] = field(default_factory=list)
    explored: int = 0  # parents inspected before the search ended

    @property
    def found(self) -> bool:
        return bool(self.nodes)
