"""Command line interface for servekit."""
