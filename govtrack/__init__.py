"""Cardano governance ingestion and voting-power reconciliation."""
