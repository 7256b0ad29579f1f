# Shared Common Library for the Training Center services.
# Authentication, permissions, error handling, pagination, middleware,
# health checks and collaborator clients.

__version__ = "1.0.0"
