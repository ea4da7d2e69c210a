"""Storage core for the school management application."""
