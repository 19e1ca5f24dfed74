"""Cash flow module -- income and expense transactions and monthly aggregation."""
