"""Doctor directory, schedule and booking workflow client."""
