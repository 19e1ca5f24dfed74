"""Authentication -- tenant users, back-office administrators, and token issuance."""
