"""Workflow analysis: dispatch schemas, job graph checks and runner matching."""
