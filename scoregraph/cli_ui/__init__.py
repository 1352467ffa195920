"""Terminal UI helpers for plans and reports."""
