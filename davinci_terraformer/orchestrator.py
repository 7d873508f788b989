"""Two-phase export orchestration.

Phase A registers every in-scope resource of every kind, records ownership,
parses references and seals the graph. Phase B converts each kind in
leaf-before-dependent order against the sealed graph, so every reference is
resolved with complete knowledge of what exists in the batch.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .config_manager import ExportConfig
from .emitters import (
    ConversionContext,
    HandlerRegistry,
    KindOutput,
    TerraformEmitter,
    VariableEligibleAttribute,
    ensure_handlers_registered,
    format_variable_blocks,
    render_environment_variable,
    render_provider_config,
)
from .emitters.base_handler import ResourceHandler
from .exceptions import (
    ConfigurationError,
    DaVinciTerraformerError,
    RequiredPathError,
    wrap_exception,
)
from .export_report import ExportMetrics, ExportReport
from .imports import RawImportBlock, format_import_blocks
from .resolver.graph import DependencyGraph, SealedGraph
from .resolver.hierarchy import HierarchyTracker
from .resolver.missing import MissingDependencyTracker
from .resolver.parser import parse_dependencies
from .resolver.reference import PLACEHOLDER_MARKER
from .resolver.schema import KIND_ORDER, ResourceKind
from .resolver.validation import GraphValidationReport

logger = logging.getLogger(__name__)

# Plural keys accepted in batch files, besides short names and Terraform types
_BATCH_KEY_ALIASES = {
    "variables": ResourceKind.VARIABLE,
    "connectors": ResourceKind.CONNECTOR_INSTANCE,
    "connector_instances": ResourceKind.CONNECTOR_INSTANCE,
    "connectorInstances": ResourceKind.CONNECTOR_INSTANCE,
    "flows": ResourceKind.FLOW,
    "applications": ResourceKind.APPLICATION,
    "flow_policies": ResourceKind.FLOW_POLICY,
    "flowPolicies": ResourceKind.FLOW_POLICY,
}


def _parse_batch_key(key: str) -> ResourceKind:
    if key in _BATCH_KEY_ALIASES:
        return _BATCH_KEY_ALIASES[key]
    return ResourceKind.parse(key)


@dataclass
class ResourceBatch:
    """All fetched documents of one export run, grouped by kind."""

    documents: Dict[ResourceKind, List[Dict[str, Any]]] = field(default_factory=dict)

    def add(self, kind: ResourceKind, document: Dict[str, Any]) -> None:
        self.documents.setdefault(kind, []).append(document)

    def documents_of(self, kind: ResourceKind) -> List[Dict[str, Any]]:
        return list(self.documents.get(kind, []))

    @property
    def count(self) -> int:
        return sum(len(docs) for docs in self.documents.values())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceBatch":
        """Build a batch from ``{kind: [document, ...]}``.

        Kinds may be given as short names ("flow"), Terraform types, or
        plural keys ("flows", "flow_policies").

        Raises:
            ConfigurationError: On unknown kinds or non-object documents
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Resource batch must be a JSON object")
        batch = cls()
        for key, documents in data.items():
            try:
                kind = _parse_batch_key(key)
            except ValueError as e:
                raise wrap_exception(
                    e, ConfigurationError, f"Unknown resource kind in batch: {key}"
                ) from e
            if not isinstance(documents, list):
                raise ConfigurationError(
                    f"Documents for {key} must be a list",
                    context={"kind": kind.value},
                )
            for document in documents:
                if not isinstance(document, dict):
                    raise ConfigurationError(
                        f"Every {key} document must be a JSON object",
                        context={"kind": kind.value},
                    )
                batch.add(kind, document)
        logger.debug(f"Loaded batch with {batch.count} documents")
        return batch

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "ResourceBatch":
        """Load a batch from a JSON file.

        Raises:
            ConfigurationError: If the file cannot be read or decoded
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise wrap_exception(
                e,
                ConfigurationError,
                f"Failed to read resource batch from {path}: {e}",
            ) from e
        return cls.from_dict(data)


@dataclass
class ExportResult:
    """Everything produced by one export run."""

    hcl: str
    provider_hcl: str
    resources_hcl: str
    variables: List[VariableEligibleAttribute]
    variables_hcl: str
    import_blocks: List[RawImportBlock]
    imports_hcl: str
    report: ExportReport
    kind_outputs: Dict[ResourceKind, KindOutput] = field(default_factory=dict)
    graph: Optional[SealedGraph] = None
    hierarchy: Optional[HierarchyTracker] = None
    missing_tracker: Optional[MissingDependencyTracker] = None
    validation_issues: List[str] = field(default_factory=list)

    @property
    def metrics(self) -> ExportMetrics:
        return self.report.metrics


def render_header(config: ExportConfig) -> str:
    """Comment banner at the top of the generated configuration."""
    lines = [
        "# DaVinci Environment Export",
        f"# Environment ID: {config.environment_id or '(variable)'}",
        f"# Region: {config.region}",
        "#",
        "# Exported resources in dependency order:",
        "# 1. Variables (no dependencies)",
        "# 2. Connector Instances (no dependencies)",
        "# 3. Flows (depends on connectors, variables and sub-flows)",
        "# 4. Applications (no dependencies)",
        "# 5. Flow Policies (depends on applications and flows)",
    ]
    return "\n".join(lines) + "\n"


class DaVinciExporter:
    """Runs the register-then-convert pipeline over one ResourceBatch.

    Every call to export() starts from a fresh graph, hierarchy and missing
    tracker; nothing is carried over between runs.

    Usage:
        exporter = DaVinciExporter(create_export_config_from_env())
        result = exporter.export(ResourceBatch.from_json_file("export.json"))
        print(result.report.format_report())
    """

    def __init__(self, config: Optional[ExportConfig] = None):
        self.config = config or ExportConfig()
        ensure_handlers_registered()

    def _handler(self, kind: ResourceKind) -> ResourceHandler:
        handler = HandlerRegistry.get_handler(kind)
        if handler is None:
            raise DaVinciTerraformerError(f"No handler registered for {kind.value}")
        return handler

    def export(self, batch: ResourceBatch) -> ExportResult:
        """Convert a batch of documents to Terraform configuration.

        Raises:
            RequiredPathError: If a required reference path is missing and
                continue_on_parse_error is off
            ConversionError: If a document cannot be converted in strict mode
        """
        logger.info(f"Starting DaVinci export for {batch.count} documents")
        metrics = ExportMetrics()
        tracker = MissingDependencyTracker()
        hierarchy = HierarchyTracker(deduplicate=self.config.deduplicate_hierarchy)
        graph = DependencyGraph()

        included = self.config.get_included_kinds()
        tracker.set_included_kinds(included)
        for kind, resource_id in self.config.get_excluded_resources():
            tracker.mark_excluded(kind, resource_id)

        # Phase A: register, record hierarchy, parse references, seal
        registered = self._register(batch, graph, tracker, hierarchy, metrics)
        self._parse_references(registered, graph, metrics)
        sealed = graph.seal()
        logger.info(
            f"Graph sealed: {sealed.resource_count} resources, "
            f"{sealed.dependency_count} dependencies"
        )

        # Phase B: convert each kind against the sealed graph
        context = ConversionContext(
            graph=sealed,
            environment_id=self.config.environment_id,
            skip_dependencies=self.config.skip_dependencies,
            generate_imports=self.config.generate_imports,
            use_variable_references=self.config.use_variable_references,
            strict_mode=self.config.strict_mode,
            missing_tracker=tracker,
            hierarchy=hierarchy,
        )
        emitter = TerraformEmitter(context)
        outputs = emitter.convert_all(
            {kind: [doc for _, doc in registered[kind]] for kind in KIND_ORDER}
        )

        for output in outputs:
            metrics.resources_generated[output.kind] = output.count
            metrics.conversion_errors.extend(output.errors)
        metrics.unlinked_references = list(context.unlinked_references)
        metrics.variables_extracted = len(context.variables)
        metrics.import_blocks_generated = len(context.import_blocks)
        metrics.hierarchy_records = len(hierarchy)

        # Diagnostics only; nothing here blocks generation
        issues = sealed.validation_issues()
        for issue in issues:
            logger.warning(f"Dependency validation: {issue}")
        validation = GraphValidationReport.from_graph(sealed, tracker)

        resources_hcl = "\n\n".join(o.hcl for o in outputs if o.hcl)
        resources_hcl = resources_hcl + "\n" if resources_hcl else ""
        metrics.todo_comments = resources_hcl.count(PLACEHOLDER_MARKER)

        provider_hcl = ""
        if not self.config.skip_dependencies:
            provider_hcl = (
                render_provider_config(self.config.region)
                + "\n"
                + render_environment_variable()
            )
        sections = [render_header(self.config), provider_hcl, resources_hcl]
        hcl = "\n".join(section for section in sections if section)

        report = ExportReport(
            metrics=metrics,
            validation=validation,
            missing_summary=tracker.summarize(),
            environment_id=self.config.environment_id,
            region=self.config.region,
        )
        logger.info(
            f"Export complete - {metrics.total_generated} resources generated, "
            f"{metrics.todo_comments} TODOs"
        )

        return ExportResult(
            hcl=hcl,
            provider_hcl=provider_hcl,
            resources_hcl=resources_hcl,
            variables=list(context.variables),
            variables_hcl=format_variable_blocks(context.variables),
            import_blocks=list(context.import_blocks),
            imports_hcl=format_import_blocks(context.import_blocks),
            report=report,
            kind_outputs={o.kind: o for o in outputs},
            graph=sealed,
            hierarchy=hierarchy,
            missing_tracker=tracker,
            validation_issues=issues,
        )

    def _register(
        self,
        batch: ResourceBatch,
        graph: DependencyGraph,
        tracker: MissingDependencyTracker,
        hierarchy: HierarchyTracker,
        metrics: ExportMetrics,
    ) -> Dict[ResourceKind, List[Tuple[str, Dict[str, Any]]]]:
        """Register every in-scope document and record ownership.

        Returns:
            (resource_id, document) pairs per kind, in batch order
        """
        registered: Dict[ResourceKind, List[Tuple[str, Dict[str, Any]]]] = {
            kind: [] for kind in KIND_ORDER
        }
        for kind in KIND_ORDER:
            documents = batch.documents_of(kind)
            metrics.documents_received[kind] = len(documents)
            if not tracker.is_in_scope(kind):
                metrics.documents_out_of_scope += len(documents)
                logger.info(
                    f"Skipping {len(documents)} {kind.short_name} (not included)"
                )
                continue

            handler = self._handler(kind)
            for document in documents:
                try:
                    resource_id = handler.resource_id(document)
                    label = handler.label(document)
                except DaVinciTerraformerError as e:
                    self._record_conversion_error(kind, document, e, metrics)
                    continue

                if tracker.is_excluded(kind, resource_id):
                    metrics.documents_excluded += 1
                    logger.debug(f"Skipping excluded {kind.value} {resource_id}")
                    continue

                if graph.has_resource(kind, resource_id):
                    metrics.documents_duplicate += 1
                    logger.warning(
                        f"Skipping duplicate {kind.value} document with ID "
                        f"{resource_id}; the first occurrence is kept"
                    )
                    continue

                graph.register(kind, resource_id, label)
                registered[kind].append((resource_id, document))
                self._record_hierarchy(kind, resource_id, document, hierarchy)

            metrics.resources_registered[kind] = len(registered[kind])
        return registered

    def _record_conversion_error(
        self,
        kind: ResourceKind,
        document: Dict[str, Any],
        error: DaVinciTerraformerError,
        metrics: ExportMetrics,
    ) -> None:
        logger.warning(f"Cannot register {kind.value} document: {error}")
        if self.config.strict_mode:
            raise error
        metrics.conversion_errors.append(
            {
                "kind": kind.value,
                "resource": document.get("name", "unknown"),
                "error": str(error),
            }
        )

    @staticmethod
    def _record_hierarchy(
        kind: ResourceKind,
        resource_id: str,
        document: Dict[str, Any],
        hierarchy: HierarchyTracker,
    ) -> None:
        if kind == ResourceKind.FLOW_POLICY:
            application_id = document.get("applicationId")
            if isinstance(application_id, str) and application_id:
                hierarchy.add_relationship(
                    ResourceKind.APPLICATION,
                    application_id,
                    ResourceKind.FLOW_POLICY,
                    [resource_id],
                )
        elif kind == ResourceKind.VARIABLE:
            flow = document.get("flow")
            flow_id = flow.get("id") if isinstance(flow, dict) else None
            if isinstance(flow_id, str) and flow_id:
                hierarchy.add_relationship(
                    ResourceKind.FLOW, flow_id, ResourceKind.VARIABLE, [resource_id]
                )

    def _parse_references(
        self,
        registered: Dict[ResourceKind, List[Tuple[str, Dict[str, Any]]]],
        graph: DependencyGraph,
        metrics: ExportMetrics,
    ) -> None:
        """Parse and record the edges of every registered resource."""
        for kind in KIND_ORDER:
            edge_count = 0
            for resource_id, document in registered[kind]:
                name = graph.lookup(kind, resource_id)
                try:
                    dependencies = parse_dependencies(
                        kind, resource_id, document, name=name
                    )
                except RequiredPathError as e:
                    if not self.config.continue_on_parse_error:
                        logger.error(f"Reference parsing failed: {e}")
                        raise
                    logger.warning(f"Reference parsing failed, continuing: {e}")
                    metrics.parse_errors.append(
                        {
                            "resource": f"{kind.value}:{resource_id}",
                            "path": e.path,
                            "error": e.message,
                        }
                    )
                    continue
                edge_count += graph.add_dependencies(dependencies)
            metrics.edges_by_kind[kind] = edge_count
