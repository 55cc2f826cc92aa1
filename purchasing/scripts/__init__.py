"""Command-line jobs that run outside the web server."""
