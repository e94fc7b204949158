"""Switchboard domain layer."""
