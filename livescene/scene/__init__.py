"""Object graph storage, assembly of documents into it, and the host runtime."""
