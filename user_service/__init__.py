"""User management backend: persistence service and REST handlers."""
