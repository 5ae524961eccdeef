"""Menu catalog: item models, structured filters and the in-process store."""
