"""Guardian Kids interactive story engine."""
