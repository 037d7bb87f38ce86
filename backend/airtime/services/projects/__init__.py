"""Project actions and the store they run against."""
