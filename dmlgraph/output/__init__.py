"""Output formatting for schedules and results."""
