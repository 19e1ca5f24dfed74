"""Stage-partitioned record pipeline -- the shared engine behind every kanban board.

Provides the stage registry and transition policy, record filters, the
partitioner with its kanban and list views, the tenant-scoped record store,
and the services that create, update, move and delete records.
"""
