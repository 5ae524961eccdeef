"""Order intake, lifecycle transitions and the order store."""
