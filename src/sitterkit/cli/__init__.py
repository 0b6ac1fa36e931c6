"""sitterkit CLI."""
