"""
Reconcile module for MetaStore - referential integrity maintenance.

Attribute tables reference their parent tables without an enforced
foreign key. This module deletes attribute rows left behind when parents
are removed out-of-band.

Invariants:
    - Deletion requires explicit confirmation
    - Reconciliation is point-in-time; new orphans may appear afterwards
"""

from .orphans import (
    OrphanReconciler,
    ReconcileErrorKind,
    ReconcilePlan,
    ReconcileResult,
)

__all__ = [
    "OrphanReconciler",
    "ReconcileErrorKind",
    "ReconcilePlan",
    "ReconcileResult",
]
