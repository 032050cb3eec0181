from dataclasses import dataclass
from enum import Enum

ALL_ACCOUNTS = "all"


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
    DOT = "dot"


@dataclass(frozen=True)
class ScoutRequest:
    """
    Represents one run of the tool, built once at the CLI boundary.

    Attributes:
        account_id: The 12-digit AWS Account ID to trace, or 'all' for the whole organization.
        output_format: How the result should be displayed.
    """
    account_id: str
    output_format: OutputFormat = OutputFormat.TEXT

    @property
    def whole_organization(self) -> bool:
        """True when the user asked for the full tree instead of a single account path."""
        return self.account_id.lower() == ALL_ACCOUNTS
