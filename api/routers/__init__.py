"""Route handlers grouped by URL prefix."""
