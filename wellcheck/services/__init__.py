"""Wellcheck services.

Service architecture follows the ADR decisions:
- ADR-001: Check-in scoring is deterministic and explainable
- ADR-003: All services use hash_pii() for user identifiers in logs
- ADR-006: Analytics Service enforces k-anonymity on every aggregate
"""
