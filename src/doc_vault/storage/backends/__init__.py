from .memory import MemoryBackend

__all__ = ["MemoryBackend"]
