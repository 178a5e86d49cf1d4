"""Encryption collaborators for host sources."""
from .age import AgeEncryptor, Decryptor, get_age_binary
from .sources import (
    StatusItem,
    VaultReport,
    encrypt_sources,
    decrypt_sources,
    plaintext_path,
)

__all__ = [
    "AgeEncryptor",
    "Decryptor",
    "get_age_binary",
    "StatusItem",
    "VaultReport",
    "encrypt_sources",
    "decrypt_sources",
    "plaintext_path",
]
