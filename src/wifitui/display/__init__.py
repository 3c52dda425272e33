"""Rich table and status rendering."""
