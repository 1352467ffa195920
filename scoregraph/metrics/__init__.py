"""Run metrics: timing, speedup and report display."""
