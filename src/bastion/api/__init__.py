"""HTTP API for bastion."""
