"""Switchboard infrastructure layer."""
