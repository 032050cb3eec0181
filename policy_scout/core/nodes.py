from typing import Optional

from policy_scout.adapters.aws_orgs import AWSOrganizationsAdapter
from policy_scout.core.resolver import ManagementAccountDetector
from policy_scout.models.org import NodeKind, OrgNode


class NodeFactory:
    """Turns bare IDs from ListChildren into named OrgNode objects."""
    def __init__(self, adapter: AWSOrganizationsAdapter, detector: ManagementAccountDetector):
        self.adapter = adapter
        self.detector = detector

    def ou(self, ou_id: str, parent_id: Optional[str]) -> OrgNode:
        ou = self.adapter.describe_ou(ou_id)
        return OrgNode(id=ou_id, kind=NodeKind.OU, name=ou["Name"], parent_id=parent_id)

    def account(self, account_id: str, parent_id: Optional[str]) -> OrgNode:
        account = self.adapter.describe_account(account_id)
        return OrgNode(
            id=account_id,
            kind=NodeKind.ACCOUNT,
            name=account["Name"],
            parent_id=parent_id,
            is_management=self.detector.is_management(account_id),
        )
