"""Byte-level encodings shared by the circuit tests and the witness preparer."""

import base64
from typing import List, Sequence, Tuple

BASE64URL_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"

BASE64URL_VALUES = {ord(c): i for i, c in enumerate(BASE64URL_ALPHABET)}

SHA256_BLOCK_BYTES = 64

JSON_WHITESPACE = (0x20, 0x09, 0x0D, 0x0A)


# --- Base64URL ---

def b64url_encode(data: bytes) -> str:
    """Unpadded base64url encoding."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(text: str) -> bytes:
    """Decode unpadded base64url text."""
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def b64_span(offset: int, length: int) -> Tuple[int, int]:
    """Base64 window covering bytes [offset, offset + length) of the decoded data.

    Returns:
        (index, count): first base64 character and number of characters.
        index % 4 is the alignment class (0, 1 or 2) of the byte offset.
    """
    start = (8 * offset) // 6
    end = -(-(8 * (offset + length)) // 6)
    return start, end - start


def b64_window_capacity(max_bytes: int) -> int:
    """Largest b64_span count over every offset for a max_bytes span."""
    return -(-(8 * max_bytes + 4) // 6)


# --- SHA-256 padding ---

def sha256_pad(message: bytes) -> bytes:
    """Append the SHA-256 padding: 0x80, zeros, then the 64-bit bit length."""
    bit_len = 8 * len(message)
    zeros = (SHA256_BLOCK_BYTES - (len(message) + 9) % SHA256_BLOCK_BYTES) % SHA256_BLOCK_BYTES
    return message + b"\x80" + b"\x00" * zeros + bit_len.to_bytes(8, "big")


def sha256_num_blocks(message_len: int) -> int:
    """Number of 64-byte blocks in the padded message."""
    return -(-(message_len + 9) // SHA256_BLOCK_BYTES)


# --- Fixed-capacity vectors ---

def pad_bytes(data: Sequence[int], max_len: int) -> List[int]:
    """Zero-pad data to max_len entries."""
    data = list(data)
    if len(data) > max_len:
        raise ValueError(f"Input of length {len(data)} exceeds maximum {max_len}")
    return data + [0] * (max_len - len(data))


def pad_str(text: str, max_len: int) -> List[int]:
    """UTF-8 bytes of text, zero-padded to max_len."""
    return pad_bytes(text.encode("utf-8"), max_len)
