from .message import Message, Summary

__all__ = ["Message", "Summary"]
