"""Adapters connecting the processor to the outside world."""
