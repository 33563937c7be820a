#!/usr/bin/env python3
"""Example: SQL store — aumos-role-grants

Persist permissions in SQLite and narrow an application query to the
entities a role is granted on.

Usage:
    python examples/02_sql_store.py

Requirements:
    pip install aumos-role-grants
"""
from __future__ import annotations

from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, select

import aumos_role_grants as rg


def main() -> None:
    engine = create_engine("sqlite://")

    # Step 1: Application tables
    metadata = MetaData()
    tasks = Table("tasks", metadata, Column("id", Integer, primary_key=True), Column("title", String(80)))
    metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(tasks.insert(), [{"id": i, "title": f"Task #{i}"} for i in range(1, 6)])

    # Step 2: Permissions, written in one transaction
    store = rg.SqlPermissionStore(engine)
    store.create_schema()
    batch = (
        rg.PermissionBatch()
        .grant("viewer", to=rg.Entity("User", 7), on=rg.TypeWildcard("Task"))
        .deny("viewer", to=rg.ALL, on=rg.Entity("Task", 3))
    )
    store.execute(batch)

    # Step 3: Tasks User 7 may view
    query = store.where_granted_on(
        select(tasks.c.title).order_by(tasks.c.id),
        tasks.c.id,
        "Task",
        rg.MatchParams.build(role="viewer", subject=rg.Entity("User", 7)),
    )
    with engine.connect() as conn:
        titles = list(conn.execute(query).scalars())
    print("User 7 can view:", ", ".join(titles))


if __name__ == "__main__":
    main()
