"""Domain contracts for the insight engine."""
