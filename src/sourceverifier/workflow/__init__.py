"""Workflow vocabulary: value types, capability policy, error taxonomy."""
