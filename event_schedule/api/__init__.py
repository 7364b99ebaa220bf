"""HTTP API for event schedules and federated feeds."""
