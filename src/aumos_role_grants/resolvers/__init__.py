"""The two evaluation paths: in-memory collections and SQL predicates.

Both paths implement the same grant/deny rules and agree on every input.
"""
from __future__ import annotations

from aumos_role_grants.resolvers import collection
from aumos_role_grants.resolvers.predicate import PredicateResolver, build_granted_predicate

__all__ = [
    "PredicateResolver",
    "build_granted_predicate",
    "collection",
]
