"""Deal attachment storage service."""
