"""servekit CLI commands."""
