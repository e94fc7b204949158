"""Configuration for Switchboard."""
