"""Billing module -- estimates and invoices, totals calculation, status workflow, and stats.

Documents move through an explicit status transition table, unlike the
free-assignment boards used by deals, projects and tasks.
"""
