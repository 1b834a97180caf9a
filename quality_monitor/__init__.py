"""Quality monitor application package."""
