"""Admin back-office -- tenants, registration keys, and per-tenant API configuration."""
