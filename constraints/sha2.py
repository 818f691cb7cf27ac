"""SHA-256 over a variable number of blocks, plus padding checks.

Words are lists of 32 bit-signals, least significant bit first. Bitwise
operations become products of bits:

    xor(a, b)    = a + b - 2ab
    ch(e, f, g)  = g + e(f - g)
    maj(a, b, c) = bc + a(b + c - 2bc)

Modular addition sums the word values and decomposes the sum, keeping the
low 32 bits. Constants are constant combinations, so the products
involving them fold away during construction.

The compression function runs over every block of the buffer; the digest
is the intermediate state after block num_blocks - 1, picked with a
one-hot vector.
"""

from typing import List, Sequence, Tuple

from primitives.encoding import SHA256_BLOCK_BYTES
from primitives.field import bit_width

from .base import LC, ConstraintSystem, LinearCombination, as_lc, inner_product, lc_sum
from .indicators import (
    bits2num,
    less_eq_than,
    less_than,
    num2bits,
    one_hot,
    threshold_vectors,
)
from .slicing import slice_grouped

Word = List[LinearCombination]

K = [
    0x428A2F98, 0x71374491, 0xB5C0FBCF, 0xE9B5DBA5, 0x3956C25B, 0x59F111F1, 0x923F82A4, 0xAB1C5ED5,
    0xD807AA98, 0x12835B01, 0x243185BE, 0x550C7DC3, 0x72BE5D74, 0x80DEB1FE, 0x9BDC06A7, 0xC19BF174,
    0xE49B69C1, 0xEFBE4786, 0x0FC19DC6, 0x240CA1CC, 0x2DE92C6F, 0x4A7484AA, 0x5CB0A9DC, 0x76F988DA,
    0x983E5152, 0xA831C66D, 0xB00327C8, 0xBF597FC7, 0xC6E00BF3, 0xD5A79147, 0x06CA6351, 0x14292967,
    0x27B70A85, 0x2E1B2138, 0x4D2C6DFC, 0x53380D13, 0x650A7354, 0x766A0ABB, 0x81C2C92E, 0x92722C85,
    0xA2BFE8A1, 0xA81A664B, 0xC24B8B70, 0xC76C51A3, 0xD192E819, 0xD6990624, 0xF40E3585, 0x106AA070,
    0x19A4C116, 0x1E376C08, 0x2748774C, 0x34B0BCB5, 0x391C0CB3, 0x4ED8AA4A, 0x5B9CCA4F, 0x682E6FF3,
    0x748F82EE, 0x78A5636F, 0x84C87814, 0x8CC70208, 0x90BEFFFA, 0xA4506CEB, 0xBEF9A3F7, 0xC67178F2,
]

H0 = [0x6A09E667, 0xBB67AE85, 0x3C6EF372, 0xA54FF53A, 0x510E527F, 0x9B05688C, 0x1F83D9AB, 0x5BE0CD19]


# --- Word operations ---

def const_word(value: int) -> Word:
    return [LinearCombination.constant((value >> i) & 1) for i in range(32)]


def _rotr(w: Word, r: int) -> Word:
    return [w[(i + r) % 32] for i in range(32)]


def _shr(w: Word, r: int) -> Word:
    return [w[i + r] if i + r < 32 else as_lc(0) for i in range(32)]


def _xor(cs: ConstraintSystem, a: LC, b: LC) -> LinearCombination:
    return as_lc(a) + b - 2 * cs.mul(a, b)


def _xor3(cs: ConstraintSystem, a: Word, b: Word, c: Word) -> Word:
    return [_xor(cs, _xor(cs, x, y), z) for x, y, z in zip(a, b, c)]


def _big_sigma0(cs, w):
    return _xor3(cs, _rotr(w, 2), _rotr(w, 13), _rotr(w, 22))


def _big_sigma1(cs, w):
    return _xor3(cs, _rotr(w, 6), _rotr(w, 11), _rotr(w, 25))


def _small_sigma0(cs, w):
    return _xor3(cs, _rotr(w, 7), _rotr(w, 18), _shr(w, 3))


def _small_sigma1(cs, w):
    return _xor3(cs, _rotr(w, 17), _rotr(w, 19), _shr(w, 10))


def _ch(cs: ConstraintSystem, e: Word, f: Word, g: Word) -> Word:
    return [z + cs.mul(x, as_lc(y) - z) for x, y, z in zip(e, f, g)]


def _maj(cs: ConstraintSystem, a: Word, b: Word, c: Word) -> Word:
    out = []
    for x, y, z in zip(a, b, c):
        yz = cs.mul(y, z)
        out.append(yz + cs.mul(x, as_lc(y) + z - 2 * yz))
    return out


def _add(cs: ConstraintSystem, *words: Word) -> Word:
    """Sum of words modulo 2^32."""
    total = lc_sum(bits2num(w) for w in words)
    carry_bits = bit_width(len(words) - 1)
    return num2bits(cs, total, 32 + carry_bits)[:32]


# --- Compression ---

def sha256_compress(cs: ConstraintSystem, state: Sequence[Word], block: Sequence[Word]) -> List[Word]:
    """One SHA-256 compression of 16 message words into an 8-word state."""
    if len(state) != 8 or len(block) != 16:
        raise ValueError(f"Expected 8 state words and 16 block words, got {len(state)} and {len(block)}")
    with cs.scope("sha256_compress"):
        w = list(block)
        for t in range(16, 64):
            w.append(_add(cs, _small_sigma1(cs, w[t - 2]), w[t - 7], _small_sigma0(cs, w[t - 15]), w[t - 16]))

        a, b, c, d, e, f, g, h = state
        for t in range(64):
            s1 = _big_sigma1(cs, e)
            ch = _ch(cs, e, f, g)
            s0 = _big_sigma0(cs, a)
            maj = _maj(cs, a, b, c)
            k = const_word(K[t])
            new_e = _add(cs, d, h, s1, ch, k, w[t])
            new_a = _add(cs, h, s1, ch, k, w[t], s0, maj)
            h, g, f, e = g, f, e, new_e
            d, c, b, a = c, b, a, new_a

        return [_add(cs, x, y) for x, y in zip(state, (a, b, c, d, e, f, g, h))]


def _block_words(byte_bits: Sequence[Sequence[LC]]) -> List[Word]:
    """Big-endian words from 64 bytes given as little-endian bit lists."""
    words = []
    for j in range(16):
        word = []
        for byte in reversed(byte_bits[4 * j:4 * j + 4]):
            word.extend(as_lc(b) for b in byte)
        words.append(word)
    return words


# --- Variable-length hashing ---

def sha256_variable(cs: ConstraintSystem, data: Sequence[LC], num_blocks: LC) -> List[LinearCombination]:
    """SHA-256 of data[:64 * num_blocks], where data already holds the padding.

    Decomposes every byte of data, which is also the byte range check for
    the buffer. The relation fails unless 1 <= num_blocks <= len(data) / 64.

    Returns:
        The eight digest words as values, most significant word first.
    """
    if len(data) % SHA256_BLOCK_BYTES:
        raise ValueError(f"Buffer length {len(data)} is not a multiple of {SHA256_BLOCK_BYTES}")
    max_blocks = len(data) // SHA256_BLOCK_BYTES
    with cs.scope("sha256"):
        byte_bits = [num2bits(cs, b, 8) for b in data]
        state = [const_word(h) for h in H0]
        states = []
        for i in range(max_blocks):
            block = _block_words(byte_bits[SHA256_BLOCK_BYTES * i:SHA256_BLOCK_BYTES * (i + 1)])
            state = sha256_compress(cs, state, block)
            states.append([bits2num(w) for w in state])

        last = one_hot(cs, as_lc(num_blocks) - 1, max_blocks)
        return [lc_sum(cs.mul(s[j], e) for s, e in zip(states, last)) for j in range(8)]


def assert_zero_after_blocks(cs: ConstraintSystem, data: Sequence[LC], num_blocks: LC) -> None:
    """Every byte of data from block num_blocks on is zero."""
    max_blocks = len(data) // SHA256_BLOCK_BYTES
    with cs.scope("sha256_tail"):
        _, live = threshold_vectors(cs, num_blocks, max_blocks)
        for i, byte in enumerate(data):
            cs.assert_zero(byte, 1 - live[i // SHA256_BLOCK_BYTES], "data after last block")


def sha256_padding_verifier(
    cs: ConstraintSystem,
    data: Sequence[LC],
    message_len: LC,
    num_blocks: LC,
    group: int = 16,
) -> None:
    """data[message_len:64 * num_blocks] is exactly the SHA-256 padding.

    That is 0x80, then zeros, then the big-endian 64-bit bit length of the
    message ending at 64 * num_blocks, with num_blocks the smallest block
    count that fits the message and its padding.
    """
    message_len = as_lc(message_len)
    padded_len = SHA256_BLOCK_BYTES * as_lc(num_blocks)
    n = bit_width(len(data) + 73) + 1
    with cs.scope("sha256_padding"):
        cs.assert_true(less_eq_than(cs, message_len + 9, padded_len, n), tag="padding fits")
        cs.assert_true(less_than(cs, padded_len, message_len + 73, n), tag="minimal padding")

        marker_run = slice_grouped(cs, data, message_len, padded_len - 8 - message_len, 64, group)
        cs.assert_equal(marker_run[0], 0x80, "0x80 marker")
        for i, byte in enumerate(marker_run[1:], start=1):
            cs.assert_zero(byte, tag=f"zero padding {i}")

        length_field = slice_grouped(cs, data, padded_len - 8, 8, 8, group)
        encoded = inner_product([256 ** (7 - i) for i in range(8)], length_field)
        cs.assert_equal(encoded, 8 * message_len, "bit length")


def digest_to_words(digest: Sequence[LC]) -> Tuple[LinearCombination, LinearCombination]:
    """(high, low) 128-bit halves of a digest given as eight 32-bit words."""
    if len(digest) != 8:
        raise ValueError(f"Expected 8 digest words, got {len(digest)}")
    weights = [1 << (32 * (3 - i)) for i in range(4)]
    return inner_product(weights, digest[:4]), inner_product(weights, digest[4:])
