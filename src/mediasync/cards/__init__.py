"""Card source access and card parsing."""
