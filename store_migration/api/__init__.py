"""HTTP API for connecting source shops and running migrations."""
