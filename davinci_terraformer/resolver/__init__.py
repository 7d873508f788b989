"""Dependency resolution engine.

Schema-driven reference discovery, resource naming, the dependency graph
with its cycle and ordering algorithms, and bookkeeping for hierarchy and
unresolved references.
"""

from .graph import Dependency, DependencyGraph, ResourceRef, SealedGraph
from .hierarchy import HierarchyRelationship, HierarchyTracker
from .missing import MissingDependency, MissingDependencyTracker, MissingReason
from .naming import NameRegistry, sanitize, sanitize_composite
from .parser import extract_values, parse_dependencies, split_path
from .reference import PLACEHOLDER_MARKER, is_placeholder, placeholder, resolve
from .schema import KIND_ORDER, SCHEMAS, FieldPath, ResourceKind, get_schema
from .validation import GraphValidationReport, generate_validation_report

__all__ = [
    "Dependency",
    "DependencyGraph",
    "FieldPath",
    "GraphValidationReport",
    "HierarchyRelationship",
    "HierarchyTracker",
    "KIND_ORDER",
    "MissingDependency",
    "MissingDependencyTracker",
    "MissingReason",
    "NameRegistry",
    "PLACEHOLDER_MARKER",
    "ResourceKind",
    "ResourceRef",
    "SCHEMAS",
    "SealedGraph",
    "extract_values",
    "generate_validation_report",
    "get_schema",
    "is_placeholder",
    "parse_dependencies",
    "placeholder",
    "resolve",
    "sanitize",
    "sanitize_composite",
    "split_path",
]
