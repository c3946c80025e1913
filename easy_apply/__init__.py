"""Easy Apply application-session engine."""
