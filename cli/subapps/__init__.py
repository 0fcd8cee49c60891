"""Command groups registered on the root Typer app."""
