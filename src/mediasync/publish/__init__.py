"""Discovery event serialization and publishing."""
