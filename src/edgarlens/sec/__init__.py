"""SEC EDGAR collaborators: HTTP client, identity resolution and filing catalog."""
