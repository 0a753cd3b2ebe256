"""Custom block definitions: field model, mutation engine, rendering."""
