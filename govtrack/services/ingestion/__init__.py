"""Proposal, vote and voter ingestion from the Koios ledger index."""
