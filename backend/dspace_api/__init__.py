"""DSpace REST core service."""
