"""API subpackage - FastAPI adapter."""
