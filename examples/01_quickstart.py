#!/usr/bin/env python3
"""Example: Quickstart — aumos-role-grants

Grant and deny roles in memory, then ask which roles are in effect.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install aumos-role-grants
"""
from __future__ import annotations

import aumos_role_grants as rg


def main() -> None:
    print(f"aumos-role-grants version: {rg.__version__}")

    # Step 1: Record permissions
    store = rg.InMemoryPermissionStore()
    store.grant("editor", to=rg.TypeWildcard("User"), on=rg.TypeWildcard("Task"))
    store.grant("owner", to=rg.Entity("User", 1), on=rg.Entity("Task", 10))
    store.deny("editor", to=rg.Entity("User", 2), on=rg.ALL)
    print(f"Stored {len(store.all())} permissions")

    # Step 2: Ask who holds what
    print("\nRoles in effect:")
    for user_id in (1, 2, 3):
        params = rg.MatchParams.build(subject=rg.Entity("User", user_id), object=rg.Entity("Task", 10))
        roles = store.roles_granted(params) or ["(none)"]
        print(f"  User {user_id} on Task 10: {', '.join(roles)}")

    # Step 3: Revoke and check again
    result = store.revoke(role="owner", from_=rg.Entity("User", 1))
    print(f"\nRevoked {result.count} permission(s)")
    still_owner = rg.granted_role(store.all(), "owner", to=rg.Entity("User", 1), on=rg.Entity("Task", 10))
    print(f"User 1 still owner of Task 10: {still_owner}")


if __name__ == "__main__":
    main()
