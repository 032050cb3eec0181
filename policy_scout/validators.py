"""
Input validation for the command-line boundary.
Everything here runs before a single AWS call is made.
"""
import re
import math

from policy_scout.core.errors import ValidationError
from policy_scout.models.request import ALL_ACCOUNTS, OutputFormat


def validate_account_id(account_id: str) -> str:
    """
    Validates AWS Account ID format.

    Args:
        account_id: AWS 12-digit account ID

    Returns:
        Validated account ID

    Raises:
        ValidationError: If account ID format is invalid
    """
    if not account_id:
        raise ValidationError("Account ID cannot be empty")

    if not re.match(r'^\d{12}$', account_id):
        raise ValidationError(f"Invalid AWS Account ID format. Expected 12 digits, got: {account_id}")

    return account_id


def validate_account_selector(value: str) -> str:
    """
    Accepts either 'all' (any case) or a 12-digit account ID.

    Returns:
        'all' normalized to lower case, or the account ID unchanged
    """
    if value and value.strip().lower() == ALL_ACCOUNTS:
        return ALL_ACCOUNTS
    return validate_account_id(value.strip() if value else value)


def validate_output_format(value: str) -> OutputFormat:
    """
    Maps the --output-format value to an OutputFormat.

    Raises:
        ValidationError: If the value is not text, json or dot
    """
    try:
        return OutputFormat(value)
    except ValueError:
        raise ValidationError(f'must be one of "text", "json", or "dot", got: {value}')


def validate_positive_int(value: int, name: str) -> int:
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got: {value}")
    return value


def validate_timeout(value: float) -> float:
    """Validates --timeout (seconds)."""
    if math.isnan(value) or math.isinf(value):
        raise ValidationError(f"Timeout must be a valid number, got: {value}")
    if value <= 0:
        raise ValidationError(f"Timeout must be positive, got: {value}")
    return value
