"""Media file discovery in object storage."""
