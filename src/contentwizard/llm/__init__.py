"""LLM collaborator interface and providers."""
