"""CRM workboard query and access-control service."""
