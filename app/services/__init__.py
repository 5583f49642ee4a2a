"""Service layer for the CRUD widgets."""
