"""Cross-cutting concerns shared by every layer above the domain."""
