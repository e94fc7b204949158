"""Primary (driving) adapters."""
