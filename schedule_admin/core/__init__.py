"""Framework-independent admin logic: identity, roles, policy and provisioning."""
