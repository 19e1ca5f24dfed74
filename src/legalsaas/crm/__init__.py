"""CRM module -- clients, the deal pipeline, and CRM dashboard metrics."""
