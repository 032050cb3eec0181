import sys
import argparse
import logging
from typing import List, Optional

from policy_scout import __version__
from policy_scout.config import ScoutSettings, load_settings
from policy_scout.core.context import ExecutionContext
from policy_scout.core.errors import ConfigurationError, OperationCancelled, OrganizationsAPIError, ValidationError
from policy_scout.core.workflow import ScoutWorkflow
from policy_scout.adapters.aws_orgs import AWSOrganizationsAdapter
from policy_scout.models.request import ScoutRequest
from policy_scout.ui.printer import TreePrinter
from policy_scout.validators import (
    validate_account_selector,
    validate_output_format,
    validate_positive_int,
    validate_timeout,
)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_AWS_ERROR = 3
EXIT_NOT_FOUND = 4
EXIT_CANCELLED = 130

logger = logging.getLogger("policy_scout")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="policy-scout",
        description="Policy Scout: shows which Service Control Policies apply to your cloud accounts",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--debug", action="store_true", help="Enable verbose logging")
    parser.add_argument("--config", help="Path to a YAML settings file (default: $POLICY_SCOUT_CONFIG)")

    subparsers = parser.add_subparsers(dest="provider", metavar="{aws,gcp}")
    subparsers.required = True

    aws = subparsers.add_parser("aws", help="Entrypoint for all AWS interactions")
    # Not using shorthand value for account id for the sake of UX
    aws.add_argument("--account-id", required=True,
                     help="AWS account ID that will be analyzed, or 'all' for the whole organization")
    aws.add_argument("-o", "--output-format", required=True, choices=["text", "json", "dot"],
                     help='valid output formats are: "text", "json", "dot"')
    aws.add_argument("--profile", help="AWS named profile to use")
    aws.add_argument("--region", help="AWS region for the Organizations client")
    aws.add_argument("--workers", type=int, help="Resolve sibling accounts with this many threads")
    aws.add_argument("--timeout", type=float, help="Abort the whole run after this many seconds")

    subparsers.add_parser("gcp", help="Entrypoint for all GCP interactions")
    return parser


def parse_request(parser: argparse.ArgumentParser, args: argparse.Namespace) -> ScoutRequest:
    """Validate inputs immediately (Fail Fast). Exits with status 2 on bad input."""
    try:
        if args.workers is not None:
            validate_positive_int(args.workers, "Workers")
        if args.timeout is not None:
            validate_timeout(args.timeout)
        return ScoutRequest(
            account_id=validate_account_selector(args.account_id),
            output_format=validate_output_format(args.output_format),
        )
    except ValidationError as e:
        parser.error(str(e))


def run_aws(request: ScoutRequest, settings: ScoutSettings, printer: TreePrinter) -> int:
    context = ExecutionContext(timeout_seconds=settings.timeout_seconds)

    try:
        adapter = AWSOrganizationsAdapter.from_session(
            profile=settings.profile,
            region=settings.region,
            context=context,
            max_retries=settings.max_retries,
            policy_filter=settings.policy_filter,
        )
        workflow = ScoutWorkflow(adapter, printer=printer, workers=settings.workers)
        result = workflow.run(request)
    except KeyboardInterrupt:
        context.cancel("interrupted by user")
        logger.warning("Interrupted, aborting")
        return EXIT_CANCELLED
    except OperationCancelled as e:
        printer.print_error("Cancelled", str(e))
        return EXIT_CANCELLED
    except ConfigurationError as e:
        printer.print_error("Configuration Error", str(e))
        return EXIT_AWS_ERROR
    except OrganizationsAPIError as e:
        logger.error(f"AWS Infrastructure Error: {e}")
        printer.print_error("AWS Error", str(e))
        return EXIT_AWS_ERROR

    if not result.found:
        return EXIT_NOT_FOUND
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup Logging (stderr, so the tree on stdout stays clean)
    log_level = logging.DEBUG if args.debug else logging.WARNING
    logging.basicConfig(level=log_level, format='%(asctime)s - %(levelname)s - %(message)s')

    printer = TreePrinter()

    if args.provider == "gcp":
        printer.print_unsupported("GCP")
        sys.exit(EXIT_OK)

    request = parse_request(parser, args)

    try:
        settings = load_settings(args.config).merged(
            profile=args.profile,
            region=args.region,
            workers=args.workers,
            timeout_seconds=args.timeout,
        )
    except ConfigurationError as e:
        printer.print_error("Configuration Error", str(e))
        sys.exit(EXIT_AWS_ERROR)

    try:
        exit_code = run_aws(request, settings, printer)
    except Exception:
        logger.exception("Unexpected System Failure")
        sys.exit(EXIT_FAILURE)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
