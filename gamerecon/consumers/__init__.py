"""Consumers of provider data: matching, reconciliation, scheduling."""
