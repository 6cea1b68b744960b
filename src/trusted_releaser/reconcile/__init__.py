"""Reconciliation engine: inspect, detect conflicts, plan, confirm, execute."""
