"""Notifications module -- per-user messages with read state, scoped to a tenant."""
