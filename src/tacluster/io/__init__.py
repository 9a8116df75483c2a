"""Reading dynamic volumes and writing clustering results."""
