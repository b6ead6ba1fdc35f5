"""Authentication core for a multi-tenant web backend."""
