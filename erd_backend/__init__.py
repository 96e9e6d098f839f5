"""Backend API for relationship diagrams."""
