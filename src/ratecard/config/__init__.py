"""Config subpackage - settings and logging setup."""
