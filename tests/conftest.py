"""
Shared fakes for the AWS Organizations API.
"""
import os
import sys
from collections import Counter
from typing import Dict, List, Optional, Tuple

import pytest
from botocore.exceptions import ClientError

# Add repo root to import path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from policy_scout.adapters.aws_orgs import AWSOrganizationsAdapter  # noqa: E402
from policy_scout.core.context import ExecutionContext  # noqa: E402


def client_error(code: str, operation: str, message: str = "boom") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class _FakePaginator:
    def __init__(self, client: "FakeOrganizationsClient", operation: str):
        self.client = client
        self.operation = operation

    def paginate(self, **kwargs):
        self.client._record(self.operation, kwargs)
        result_key, items = getattr(self.client, f"_{self.operation}")(**kwargs)
        size = self.client.page_size or max(len(items), 1)
        chunks = [items[i:i + size] for i in range(0, len(items), size)] or [[]]
        for chunk in chunks:
            yield {result_key: chunk}


class FakeOrganizationsClient:
    """
    In-memory organization that answers the boto3 calls the adapter makes.

    ous and accounts map ID -> (name, parent ID); insertion order is the order
    ListChildren returns. `errors` maps an operation name to a list of
    exceptions raised (one per call) before the call starts succeeding.
    """
    def __init__(self, root_id: str = "r-cww9",
                 ous: Optional[Dict[str, Tuple[str, str]]] = None,
                 accounts: Optional[Dict[str, Tuple[str, str]]] = None,
                 policies: Optional[Dict[str, List[str]]] = None,
                 master_account_id: str = "111111111111",
                 extra_roots: Optional[List[str]] = None,
                 page_size: Optional[int] = None):
        self.root_id = root_id
        self.ous = ous or {}
        self.accounts = accounts or {}
        self.policies = policies or {}
        self.master_account_id = master_account_id
        self.extra_roots = extra_roots or []
        self.page_size = page_size
        self.calls: Counter = Counter()
        self.log: List[Tuple[str, dict]] = []
        self.errors: Dict[str, list] = {}

    def _record(self, operation: str, kwargs: dict) -> None:
        self.calls[operation] += 1
        self.log.append((operation, kwargs))
        pending = self.errors.get(operation)
        if pending:
            raise pending.pop(0)

    def get_paginator(self, operation: str):
        return _FakePaginator(self, operation)

    # --- paginated operations: return (result key, items) ---

    def _list_roots(self):
        return "Roots", [{"Id": r, "Name": "Root"} for r in [self.root_id] + self.extra_roots]

    def _list_children(self, ParentId, ChildType):  # noqa: N803 - boto3 shape
        source = self.accounts if ChildType == "ACCOUNT" else self.ous
        children = [{"Id": cid, "Type": ChildType} for cid, (_, parent) in source.items() if parent == ParentId]
        return "Children", children

    def _list_parents(self, ChildId):  # noqa: N803 - boto3 shape
        parent_id = None
        if ChildId in self.accounts:
            parent_id = self.accounts[ChildId][1]
        elif ChildId in self.ous:
            parent_id = self.ous[ChildId][1]
        if parent_id is None:
            return "Parents", []
        parent_type = "ROOT" if parent_id == self.root_id else "ORGANIZATIONAL_UNIT"
        return "Parents", [{"Id": parent_id, "Type": parent_type}]

    def _list_policies_for_target(self, TargetId, Filter):  # noqa: N803 - boto3 shape
        names = self.policies.get(TargetId, [])
        return "Policies", [{"Id": f"p-{n.lower()}", "Name": n, "Type": Filter} for n in names]

    # --- plain operations ---

    def describe_account(self, AccountId):  # noqa: N803 - boto3 shape
        self._record("describe_account", {"AccountId": AccountId})
        if AccountId not in self.accounts:
            raise client_error("AccountNotFoundException", "DescribeAccount")
        return {"Account": {"Id": AccountId, "Name": self.accounts[AccountId][0]}}

    def describe_organizational_unit(self, OrganizationalUnitId):  # noqa: N803 - boto3 shape
        self._record("describe_organizational_unit", {"OrganizationalUnitId": OrganizationalUnitId})
        if OrganizationalUnitId not in self.ous:
            raise client_error("OrganizationalUnitNotFoundException", "DescribeOrganizationalUnit")
        return {"OrganizationalUnit": {"Id": OrganizationalUnitId, "Name": self.ous[OrganizationalUnitId][0]}}

    def describe_organization(self):
        self._record("describe_organization", {})
        return {"Organization": {"Id": "o-exampleorgid", "MasterAccountId": self.master_account_id}}


ROOT_ID = "r-cww9"
PROD_OU = "ou-cww9-36h7ub42"
FINANCE_OU = "ou-cww9-x2atbcle"
TEST_OU = "ou-cww9-t3st0001"
DEV_OU = "ou-cww9-d3v00001"
SANDBOX_OU = "ou-cww9-sandbox1"

MANAGEMENT_ACCOUNT = "111111111111"
PROD_SHARED_ACCOUNT = "222222222222"
CHILD1_ACCOUNT = "339712974046"
TEST_ACCOUNT = "444444444444"
SANDBOX_ACCOUNT = "555555555555"


def build_scenario_org(**kwargs) -> FakeOrganizationsClient:
    """
    r-cww9
      111111111111 aws-management (management account)
      Prod
        222222222222 aws-prod-shared
        Finance
          339712974046 aws-child1
      Test
        444444444444 aws-test1
      Dev
        Sandbox
          555555555555 aws-sandbox
    """
    return FakeOrganizationsClient(
        root_id=ROOT_ID,
        ous={
            PROD_OU: ("Prod", ROOT_ID),
            FINANCE_OU: ("Finance", PROD_OU),
            TEST_OU: ("Test", ROOT_ID),
            DEV_OU: ("Dev", ROOT_ID),
            SANDBOX_OU: ("Sandbox", DEV_OU),
        },
        accounts={
            MANAGEMENT_ACCOUNT: ("aws-management", ROOT_ID),
            PROD_SHARED_ACCOUNT: ("aws-prod-shared", PROD_OU),
            CHILD1_ACCOUNT: ("aws-child1", FINANCE_OU),
            TEST_ACCOUNT: ("aws-test1", TEST_OU),
            SANDBOX_ACCOUNT: ("aws-sandbox", SANDBOX_OU),
        },
        policies={
            ROOT_ID: ["FullAWSAccess"],
            MANAGEMENT_ACCOUNT: ["FullAWSAccess"],
            PROD_OU: ["FullAWSAccess"],
            PROD_SHARED_ACCOUNT: ["FullAWSAccess"],
            FINANCE_OU: ["FullAWSAccess", "DenyAccessS3"],
            CHILD1_ACCOUNT: ["FullAWSAccess"],
            TEST_OU: ["FullAWSAccess", "DenyRegions"],
            TEST_ACCOUNT: ["FullAWSAccess"],
            DEV_OU: ["FullAWSAccess", "DenyLeaveOrg"],
            SANDBOX_OU: ["FullAWSAccess"],
            SANDBOX_ACCOUNT: ["FullAWSAccess"],
        },
        master_account_id=MANAGEMENT_ACCOUNT,
        **kwargs,
    )


@pytest.fixture
def scenario_org():
    return build_scenario_org()


@pytest.fixture
def make_adapter():
    def _make(client, **kwargs):
        kwargs.setdefault("context", ExecutionContext())
        return AWSOrganizationsAdapter(orgs_client=client, **kwargs)
    return _make


@pytest.fixture
def fake_org_factory():
    return FakeOrganizationsClient


@pytest.fixture
def scenario_factory():
    return build_scenario_org


@pytest.fixture
def isolated_aws_env(tmp_path, monkeypatch):
    """Points boto3 at an empty config so real sessions never read the developer's profiles."""
    config = tmp_path / "aws_config"
    config.write_text("")
    monkeypatch.setenv("AWS_CONFIG_FILE", str(config))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "aws_credentials"))
    monkeypatch.setenv("AWS_EC2_METADATA_DISABLED", "true")
    for var in ("AWS_PROFILE", "AWS_DEFAULT_PROFILE", "AWS_REGION", "AWS_DEFAULT_REGION",
                "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_SESSION_TOKEN", "POLICY_SCOUT_CONFIG"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path
