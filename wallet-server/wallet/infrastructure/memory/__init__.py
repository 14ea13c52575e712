from .directory import InMemoryUserDirectory

__all__ = ["InMemoryUserDirectory"]
