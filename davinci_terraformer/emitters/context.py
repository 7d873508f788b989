"""ConversionContext - Shared state passed to all handlers during conversion.

The context wraps the sealed dependency graph and decides, field by field,
how a reference is written: a Terraform reference when the target is
registered, a placeholder plus a missing-dependency record when it is not,
or the literal remote ID when dependencies are skipped.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..exceptions import ResourceNotRegisteredError
from ..hcl import HclExpression, quote_string
from ..imports import RawImportBlock
from ..resolver.graph import Dependency, ResourceRef, SealedGraph
from ..resolver.hierarchy import HierarchyTracker
from ..resolver.missing import MissingDependencyTracker
from ..resolver.reference import placeholder, resolve
from ..resolver.schema import ResourceKind
from .variables import VariableEligibleAttribute

logger = logging.getLogger(__name__)

ENVIRONMENT_VARIABLE = "pingone_environment_id"


@dataclass
class ConversionContext:
    """Shared context passed to all handlers during conversion.

    Usage:
        context = ConversionContext(graph=graph.seal(), environment_id="env")
        handler.emit(document, context)
    """

    graph: SealedGraph
    environment_id: str = ""
    skip_dependencies: bool = False
    generate_imports: bool = False
    use_variable_references: bool = False
    strict_mode: bool = False

    missing_tracker: MissingDependencyTracker = field(
        default_factory=MissingDependencyTracker
    )
    hierarchy: Optional[HierarchyTracker] = None

    # Collected output
    variables: List[VariableEligibleAttribute] = field(default_factory=list)
    import_blocks: List[RawImportBlock] = field(default_factory=list)

    # References written literally because no parsed edge backs them
    unlinked_references: List[Dict[str, str]] = field(default_factory=list)

    _edge_index: Dict[str, List[Dependency]] = field(
        default_factory=dict, init=False, repr=False
    )

    @property
    def environment_id_expression(self) -> str:
        if self.skip_dependencies:
            return quote_string(self.environment_id)
        return f"var.{ENVIRONMENT_VARIABLE}"

    def resource_name(self, kind: ResourceKind, resource_id: str) -> str:
        return self.graph.lookup(kind, resource_id)

    def source_ref(self, kind: ResourceKind, resource_id: str) -> ResourceRef:
        return self.graph.get(kind, resource_id) or ResourceRef(kind, resource_id)

    def edges_for(self, source: ResourceRef) -> List[Dependency]:
        if source.key not in self._edge_index:
            self._edge_index[source.key] = self.graph.edges_from(
                source.id, source.kind
            )
        return self._edge_index[source.key]

    def _find_edge(
        self, source: ResourceRef, field_name: str, target_id: str
    ) -> Optional[Dependency]:
        for edge in self.edges_for(source):
            if edge.field_name == field_name and edge.target.id == target_id:
                return edge
        return None

    def reference_for(
        self,
        source: ResourceRef,
        field_name: str,
        target_id: str,
        attribute: str = "id",
    ) -> HclExpression:
        """Expression for one referencing field of ``source``.

        Only edges recorded while parsing ``source`` are consulted.

        Args:
            source: Resource being converted
            field_name: Output field name from the reference schema
            target_id: Remote ID found in the document
            attribute: Attribute of the target to reference

        Returns:
            Reference, placeholder, or quoted literal ID
        """
        if self.skip_dependencies:
            return HclExpression(quote_string(target_id))

        edge = self._find_edge(source, field_name, target_id)
        if edge is None:
            logger.warning(
                f"No parsed dependency backs {source.key} {field_name}={target_id}; "
                f"writing the literal ID"
            )
            self.unlinked_references.append(
                {
                    "source": source.key,
                    "field": field_name,
                    "target_id": target_id,
                }
            )
            return HclExpression(quote_string(target_id))

        target = edge.target
        try:
            return HclExpression(
                resolve(self.graph, target.kind, target.id, attribute)
            )
        except ResourceNotRegisteredError:
            missing = self.missing_tracker.record(
                source, target, edge.field_name, edge.location
            )
            return HclExpression.from_text(
                placeholder(target.kind, target.id, missing.reason.description)
            )

    def add_variables(self, attributes: List[VariableEligibleAttribute]) -> None:
        self.variables.extend(attributes)

    def add_import(self, block: RawImportBlock) -> None:
        self.import_blocks.append(block)
