"""Concrete LLM clients, one module per provider family."""
