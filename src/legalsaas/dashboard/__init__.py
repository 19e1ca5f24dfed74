"""Dashboard module -- overview figures composed from the CRM, project, task and cash-flow services."""
