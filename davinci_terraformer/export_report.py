"""End-of-run reporting for DaVinci exports.

This module collects the metrics of one export run (resources and edges
per kind, parse diagnostics, conversion errors) and formats them together
with the dependency validation report and the missing-dependency summary.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from .resolver.schema import KIND_ORDER, ResourceKind
from .resolver.validation import GraphValidationReport

logger = logging.getLogger(__name__)


@dataclass
class ExportMetrics:
    """Metrics collected during one export run."""

    # Input
    documents_received: Dict[ResourceKind, int] = field(default_factory=dict)
    documents_out_of_scope: int = 0
    documents_excluded: int = 0
    documents_duplicate: int = 0

    # Graph
    resources_registered: Dict[ResourceKind, int] = field(default_factory=dict)
    edges_by_kind: Dict[ResourceKind, int] = field(default_factory=dict)
    hierarchy_records: int = 0

    # Generation
    resources_generated: Dict[ResourceKind, int] = field(default_factory=dict)
    variables_extracted: int = 0
    import_blocks_generated: int = 0
    todo_comments: int = 0

    # Diagnostics
    parse_errors: List[Dict[str, Any]] = field(default_factory=list)
    conversion_errors: List[Dict[str, Any]] = field(default_factory=list)
    unlinked_references: List[Dict[str, str]] = field(default_factory=list)

    @property
    def total_generated(self) -> int:
        return sum(self.resources_generated.values())

    @property
    def total_edges(self) -> int:
        return sum(self.edges_by_kind.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documents_received": {
                k.value: v for k, v in self.documents_received.items()
            },
            "documents_out_of_scope": self.documents_out_of_scope,
            "documents_excluded": self.documents_excluded,
            "documents_duplicate": self.documents_duplicate,
            "resources_registered": {
                k.value: v for k, v in self.resources_registered.items()
            },
            "edges_by_kind": {k.value: v for k, v in self.edges_by_kind.items()},
            "hierarchy_records": self.hierarchy_records,
            "resources_generated": {
                k.value: v for k, v in self.resources_generated.items()
            },
            "variables_extracted": self.variables_extracted,
            "import_blocks_generated": self.import_blocks_generated,
            "todo_comments": self.todo_comments,
            "parse_errors": list(self.parse_errors),
            "conversion_errors": list(self.conversion_errors),
            "unlinked_references": list(self.unlinked_references),
        }


@dataclass
class ExportReport:
    """Complete export report with metrics and formatting."""

    metrics: ExportMetrics
    validation: GraphValidationReport
    missing_summary: str
    environment_id: str = ""
    region: str = ""

    def format_report(self) -> str:
        """Format the export report as a human-readable string.

        Returns:
            Formatted report string ready for display.
        """
        lines = []
        lines.append("")
        lines.append("=" * 80)
        lines.append("DAVINCI TERRAFORM EXPORT REPORT")
        lines.append("=" * 80)
        if self.environment_id:
            lines.append(f"  Environment: {self.environment_id}")
        if self.region:
            lines.append(f"  Region:      {self.region}")
        lines.append("")

        lines.append("RESOURCES")
        lines.append("-" * 80)
        lines.append(f"  {'Kind':<42}{'Input':>8}{'Graph':>8}{'Edges':>8}{'Output':>8}")
        for kind in KIND_ORDER:
            lines.append(
                f"  {kind.value:<42}"
                f"{self.metrics.documents_received.get(kind, 0):>8}"
                f"{self.metrics.resources_registered.get(kind, 0):>8}"
                f"{self.metrics.edges_by_kind.get(kind, 0):>8}"
                f"{self.metrics.resources_generated.get(kind, 0):>8}"
            )
        lines.append(f"  Total Generated:          {self.metrics.total_generated}")
        lines.append(f"  Total Edges:              {self.metrics.total_edges}")
        lines.append(f"  Hierarchy Records:        {self.metrics.hierarchy_records}")
        if self.metrics.documents_out_of_scope:
            lines.append(
                f"  Not Included (scope):     {self.metrics.documents_out_of_scope}"
            )
        if self.metrics.documents_excluded:
            lines.append(
                f"  Excluded:                 {self.metrics.documents_excluded}"
            )
        if self.metrics.documents_duplicate:
            lines.append(
                f"  Duplicate IDs (skipped):  {self.metrics.documents_duplicate}"
            )
        lines.append("")

        lines.append("OUTPUTS")
        lines.append("-" * 80)
        lines.append(f"  Variables Extracted:      {self.metrics.variables_extracted}")
        lines.append(
            f"  Import Blocks:            {self.metrics.import_blocks_generated}"
        )
        lines.append(f"  TODO Comments:            {self.metrics.todo_comments}")
        lines.append("")

        lines.append(self.validation.format_report())
        lines.append("")

        if self.metrics.parse_errors:
            lines.append(f"PARSE ERRORS ({len(self.metrics.parse_errors)})")
            lines.append("-" * 80)
            for error in self.metrics.parse_errors:
                lines.append(f"  • {error['resource']}: {error['error']}")
            lines.append("")

        if self.metrics.conversion_errors:
            lines.append(f"CONVERSION ERRORS ({len(self.metrics.conversion_errors)})")
            lines.append("-" * 80)
            for error in self.metrics.conversion_errors:
                lines.append(
                    f"  • {error['kind']} {error['resource']}: {error['error']}"
                )
            lines.append("")

        if self.metrics.unlinked_references:
            lines.append(
                f"LITERAL REFERENCES ({len(self.metrics.unlinked_references)})"
            )
            lines.append("-" * 80)
            for ref in self.metrics.unlinked_references:
                lines.append(
                    f"  • {ref['source']} {ref['field']} = \"{ref['target_id']}\""
                )
            lines.append("")

        lines.append(self.missing_summary.strip("\n"))
        lines.append("")
        lines.append("=" * 80)
        lines.append("")

        return "\n".join(lines)

    def save_to_file(self, path: Path) -> Path:
        """Write the formatted report to ``path``.

        Returns:
            The path written
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.format_report(), encoding="utf-8")
        logger.info(f"Export report written to {path}")
        return path
