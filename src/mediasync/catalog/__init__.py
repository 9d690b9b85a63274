"""Media catalog storage and card reconciliation."""
