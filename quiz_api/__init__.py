"""Click quiz HTTP API."""
