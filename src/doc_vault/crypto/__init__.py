from .engine import ALGORITHM, IV_LENGTH, KEY_LENGTH, EncryptionEngine

__all__ = ["ALGORITHM", "IV_LENGTH", "KEY_LENGTH", "EncryptionEngine"]
