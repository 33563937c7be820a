"""Command-line interface for aumos-role-grants."""
