import boto3
import logging
import random
from typing import Any, Callable, Dict, List, Optional
from botocore.config import Config as BotoConfig
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    NoRegionError,
    PartialCredentialsError,
    ProfileNotFound,
)

from policy_scout.core.context import ExecutionContext
from policy_scout.core.errors import (
    ConfigurationError,
    HierarchyError,
    OrganizationsAPIError,
    UnsupportedOrganizationError,
)

CHILD_TYPE_ACCOUNT = "ACCOUNT"
CHILD_TYPE_OU = "ORGANIZATIONAL_UNIT"
SCP_FILTER = "SERVICE_CONTROL_POLICY"

CONNECT_TIMEOUT_SECONDS = 10
READ_TIMEOUT_SECONDS = 30
MIN_TIMEOUT_SECONDS = 0.1

THROTTLING_CODES = {
    "TooManyRequestsException",
    "ThrottlingException",
    "Throttling",
    "RequestLimitExceeded",
}

# Errors that mean "you are not logged in", not "AWS is broken"
_CREDENTIAL_ERRORS = (NoCredentialsError, PartialCredentialsError, ProfileNotFound, NoRegionError)


def client_config(context: Optional[ExecutionContext] = None) -> BotoConfig:
    """
    botocore settings for the Organizations client.
    botocore's own retries are turned off so `_call` is the only retry layer, and
    socket timeouts never run past the context deadline.
    """
    connect_timeout = CONNECT_TIMEOUT_SECONDS
    read_timeout = READ_TIMEOUT_SECONDS
    remaining = context.remaining() if context else None
    if remaining is not None:
        connect_timeout = max(MIN_TIMEOUT_SECONDS, min(connect_timeout, remaining))
        read_timeout = max(MIN_TIMEOUT_SECONDS, min(read_timeout, remaining))
    return BotoConfig(
        retries={"total_max_attempts": 1, "mode": "standard"},
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
    )


class AWSOrganizationsAdapter:
    """
    Read-only window onto the AWS Organizations API.
    Every call is checked against the execution context, paginated, retried on
    throttling and wrapped into OrganizationsAPIError with the failing operation
    and node ID. Nothing is written back to AWS.
    """
    def __init__(self, orgs_client=None, context: Optional[ExecutionContext] = None,
                 max_retries: int = 3, policy_filter: str = SCP_FILTER):
        # Dependency Injection allows us to pass fake clients during testing
        if max_retries <= 0:
            raise ValueError(f"max_retries must be positive, got {max_retries}")
        self.context = context or ExecutionContext()
        self.orgs = orgs_client or boto3.client("organizations", config=client_config(self.context))
        self.max_retries = max_retries
        self.policy_filter = policy_filter
        self.logger = logging.getLogger("policy_scout.adapter")

    def __repr__(self):
        return f"AWSOrganizationsAdapter(policy_filter={self.policy_filter}, max_retries={self.max_retries})"

    @classmethod
    def from_session(cls, profile: Optional[str] = None, region: Optional[str] = None,
                     **kwargs) -> "AWSOrganizationsAdapter":
        """
        Builds the adapter from the local AWS configuration (profile, env vars, instance role).
        Raises ConfigurationError when no usable session can be created.
        """
        session_kwargs = {}
        if profile:
            session_kwargs["profile_name"] = profile
        if region:
            session_kwargs["region_name"] = region
        try:
            session = boto3.Session(**session_kwargs)
            client = session.client("organizations", config=client_config(kwargs.get("context")))
        except _CREDENTIAL_ERRORS as e:
            raise ConfigurationError(f"Could not create an AWS session: {e}") from e
        return cls(orgs_client=client, **kwargs)

    # --- PLUMBING ---

    def _call(self, operation: str, target_id: Optional[str], fn: Callable[[], Any]) -> Any:
        """
        Runs one AWS request with throttling backoff.
        Exponential backoff with jitter, same shape as AWS recommends: 2^(n-1) + up to 50%.
        """
        for attempt in range(1, self.max_retries + 1):
            self.context.check()
            try:
                self.logger.debug(f"AWS API: {operation} ({target_id or '-'}) attempt {attempt}")
                return fn()
            except ClientError as e:
                code = e.response.get("Error", {}).get("Code", "Unknown")
                message = e.response.get("Error", {}).get("Message", str(e))

                if code in THROTTLING_CODES and attempt < self.max_retries:
                    backoff = 2 ** (attempt - 1)
                    sleep_time = backoff + random.uniform(0, backoff * 0.5)
                    self.logger.warning(
                        f"AWS throttling ({code}) on {operation}. "
                        f"Waiting {sleep_time:.2f} seconds... (Attempt {attempt}/{self.max_retries})"
                    )
                    self.context.sleep(sleep_time)
                    continue

                if code in THROTTLING_CODES:
                    message = f"throttling exceeded {self.max_retries} attempts ({message})"
                raise OrganizationsAPIError(operation, target_id, message, error_code=code) from e
            except _CREDENTIAL_ERRORS as e:
                raise ConfigurationError(f"AWS credentials are not available: {e}") from e
            except BotoCoreError as e:
                # A socket timeout cut short by the deadline is a cancellation, not an AWS fault
                self.context.check()
                raise OrganizationsAPIError(operation, target_id, str(e)) from e

        # The loop always returns or raises; this keeps the contract explicit.
        raise OrganizationsAPIError(operation, target_id, f"exceeded {self.max_retries} attempts")

    def _paginate(self, operation: str, target_id: Optional[str], result_key: str, **params) -> List[Dict]:
        """Collects every page of a list_* operation into a single list."""
        def fetch():
            items: List[Dict] = []
            paginator = self.orgs.get_paginator(operation)
            for page in paginator.paginate(**params):
                self.context.check()
                items.extend(page.get(result_key, []))
            return items

        return self._call(operation, target_id, fetch)

    # --- READ METHODS ---

    def get_root_id(self) -> str:
        """
        Returns the ID of the organization Root.
        An organization has exactly one; anything else is a setup we do not support.
        """
        roots = self._paginate("list_roots", None, "Roots")
        if not roots:
            raise UnsupportedOrganizationError("list_roots", None, "no roots found in the organization")
        if len(roots) > 1:
            ids = ", ".join(r.get("Id", "?") for r in roots)
            raise UnsupportedOrganizationError(
                "list_roots", None, f"organizations with more than one root are not supported ({ids})"
            )
        return roots[0]["Id"]

    def list_children(self, parent_id: str, child_type: str) -> List[str]:
        """Lists the IDs of the direct children of `parent_id` of one type (ACCOUNT or ORGANIZATIONAL_UNIT)."""
        children = self._paginate(
            "list_children", parent_id, "Children", ParentId=parent_id, ChildType=child_type
        )
        return [child["Id"] for child in children]

    def describe_account(self, account_id: str) -> Dict[str, str]:
        resp = self._call(
            "describe_account", account_id, lambda: self.orgs.describe_account(AccountId=account_id)
        )
        account = resp.get("Account", {})
        return {"Id": account.get("Id", account_id), "Name": account.get("Name", "")}

    def describe_ou(self, ou_id: str) -> Dict[str, str]:
        resp = self._call(
            "describe_organizational_unit",
            ou_id,
            lambda: self.orgs.describe_organizational_unit(OrganizationalUnitId=ou_id),
        )
        ou = resp.get("OrganizationalUnit", {})
        return {"Id": ou.get("Id", ou_id), "Name": ou.get("Name", "")}

    def list_policies_for_target(self, target_id: str, policy_filter: Optional[str] = None) -> List[str]:
        """Names of the policies attached directly to a Root, OU or account, in API order."""
        policies = self._paginate(
            "list_policies_for_target",
            target_id,
            "Policies",
            TargetId=target_id,
            Filter=policy_filter or self.policy_filter,
        )
        return [p["Name"] for p in policies]

    def list_parents(self, child_id: str) -> List[Dict[str, str]]:
        parents = self._paginate("list_parents", child_id, "Parents", ChildId=child_id)
        for parent in parents:
            if not parent.get("Id") or not parent.get("Type"):
                raise HierarchyError("list_parents", child_id, "parent missing Id/Type")
        return [{"Id": p["Id"], "Type": p["Type"]} for p in parents]

    def get_management_account_id(self) -> str:
        resp = self._call("describe_organization", None, lambda: self.orgs.describe_organization())
        master_id = resp.get("Organization", {}).get("MasterAccountId")
        if not master_id:
            raise OrganizationsAPIError("describe_organization", None, "response has no MasterAccountId")
        return master_id
