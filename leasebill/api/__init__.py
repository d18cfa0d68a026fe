"""HTTP API for landlord and tenant billing."""
