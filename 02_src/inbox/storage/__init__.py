"""Storage module."""

from .storage import IStorage, Storage, decode_cursor, encode_cursor

__all__ = ["IStorage", "Storage", "decode_cursor", "encode_cursor"]
