import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from policy_scout.adapters.aws_orgs import AWSOrganizationsAdapter
from policy_scout.core.nodes import NodeFactory
from policy_scout.core.path_finder import PathFinder
from policy_scout.core.resolver import ManagementAccountDetector, PolicyResolver
from policy_scout.core.walker import TreeWalker
from policy_scout.models.org import OrgNode, PathResult, TreeLine
from policy_scout.models.request import OutputFormat, ScoutRequest
from policy_scout.ui.printer import TreePrinter

logger = logging.getLogger(__name__)

PLACEHOLDERS = {
    OutputFormat.JSON: "JSON Output",
    OutputFormat.DOT: "Dot Output",
}


@dataclass
class ScoutResult:
    """What a run produced. `found` is False only when a single-account search came up empty."""
    output_format: OutputFormat
    lines_printed: int = 0
    found: bool = True
    implemented: bool = True
    path: Optional[PathResult] = None


class ScoutWorkflow:
    """
    Orchestrates one run: resolve the Root, pick single-path or full-tree
    mode, attach effective SCPs to every account and hand lines to the printer.
    All caches live on this object, so build a fresh workflow per run.
    """
    def __init__(self, adapter: AWSOrganizationsAdapter, printer: Optional[TreePrinter] = None,
                 workers: int = 1):
        if workers <= 0:
            raise ValueError(f"workers must be positive, got {workers}")
        self.adapter = adapter
        self.printer = printer or TreePrinter()
        self.workers = workers
        self.detector = ManagementAccountDetector(adapter)
        self.factory = NodeFactory(adapter, self.detector)
        self.resolver: Optional[PolicyResolver] = None

    def run(self, request: ScoutRequest) -> ScoutResult:
        if request.output_format in PLACEHOLDERS:
            # Only the text tree is implemented so far
            logger.info(f"Output format '{request.output_format.value}' is not implemented yet")
            self.printer.print_placeholder(PLACEHOLDERS[request.output_format])
            return ScoutResult(output_format=request.output_format, implemented=False)

        root = OrgNode.root(self.adapter.get_root_id())
        logger.info(f"Organization root: {root.id}")
        self.resolver = PolicyResolver(self.adapter, root_id=root.id)

        if request.whole_organization:
            logger.info("Mode: whole organization")
            count = self.printer.print_lines(self.organization_lines(root))
            return ScoutResult(output_format=request.output_format, lines_printed=count)

        logger.info(f"Mode: single account {request.account_id}")
        path = PathFinder(self.adapter, self.factory).find_path(root, request.account_id)
        if not path.found:
            self.printer.print_not_found(path)
            return ScoutResult(output_format=request.output_format, found=False, path=path)

        count = self.printer.print_lines(self.path_lines(path))
        return ScoutResult(output_format=request.output_format, lines_printed=count, path=path)

    # --- LINE BUILDERS ---

    def path_lines(self, path: PathResult) -> Iterator[TreeLine]:
        return self._with_policies((node, depth) for depth, node in enumerate(path.nodes))

    def organization_lines(self, root: OrgNode) -> Iterator[TreeLine]:
        walker = TreeWalker(self.adapter, self.factory)
        return self._with_policies(walker.walk(root))

    def _with_policies(self, visits: Iterable[Tuple[OrgNode, int]]) -> Iterator[TreeLine]:
        """
        Attaches effective SCPs to account nodes.
        Consecutive accounts (siblings) are resolved as one batch, concurrently when
        workers > 1; results are yielded in visit order regardless of completion order.
        """
        batch: List[Tuple[OrgNode, int]] = []

        for node, depth in visits:
            self.resolver.remember_parent(node.id, node.parent_id)
            if node.is_account:
                batch.append((node, depth))
                continue
            yield from self._flush(batch)
            batch = []
            yield TreeLine(node=node, depth=depth)

        yield from self._flush(batch)

    def _flush(self, batch: List[Tuple[OrgNode, int]]) -> List[TreeLine]:
        if not batch:
            return []

        ids = [node.id for node, _ in batch]
        if self.workers > 1 and len(batch) > 1:
            with ThreadPoolExecutor(max_workers=min(self.workers, len(batch))) as pool:
                resolved = list(pool.map(self.resolver.resolve, ids))
        else:
            resolved = [self.resolver.resolve(account_id) for account_id in ids]

        return [
            TreeLine(node=node, depth=depth, policies=policies)
            for (node, depth), policies in zip(batch, resolved)
        ]
