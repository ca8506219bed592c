"""
Layer 2: Cross-File Merger

Unifies header class declarations with out-of-line bodies from their
implementation units.
"""

from merging.merger import (
    PURE,
    RESOLVED,
    UNRESOLVED,
    MergedClass,
    MethodBinding,
    factory_methods,
    is_interface,
    is_static_class,
    link_factory_bodies,
    merge_class,
    report_unresolved,
)

__all__ = [
    "PURE",
    "RESOLVED",
    "UNRESOLVED",
    "MergedClass",
    "MethodBinding",
    "factory_methods",
    "is_interface",
    "is_static_class",
    "link_factory_bodies",
    "merge_class",
    "report_unresolved",
]
