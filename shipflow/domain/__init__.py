"""Domain-level policies and business rules.

This package contains the workflow rules (status enums, the transition
catalog), the subscription entitlement policy and date arithmetic,
independent from *where* they are applied (engine, repositories, API).
"""
