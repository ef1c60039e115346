"""Shared library code for servekit: errors, console logging, system queries."""
