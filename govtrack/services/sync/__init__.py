"""Scheduled and read-triggered synchronisation."""
