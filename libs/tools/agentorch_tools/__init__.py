"""Tool registry and the permission-enforcing tool gateway."""
