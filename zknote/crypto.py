from hashlib import blake2b

from zknote.config import DEFAULT_CONFIG
from zknote.jubjub import BLS_MODULUS, JUBJUB_ORDER, Point, recover_u
from zknote.algebraic_hash import Poseidon


# !Important! The crypto primitives here must be in agreement with the proving system.
# Jubjub is defined over the BLS12-381 scalar field, which is the field the
# output circuit is written over.

HASH = Poseidon(DEFAULT_CONFIG.poseidon)


def prf_expand(label: bytes, key: bytes, data: bytes) -> bytes:
    """
    BLAKE2b-512 keyed by personalization `label` (at most 16 bytes).
    """
    h = blake2b(digest_size=64, person=label)
    h.update(key)
    h.update(data)
    return h.digest()


def hash_to_field(label: bytes, *parts: bytes) -> int:
    h = blake2b(digest_size=64, person=label)
    for p in parts:
        h.update(len(p).to_bytes(4, "big"))
        h.update(p)
    return int.from_bytes(h.digest(), "big") % BLS_MODULUS


def hash_to_scalar(label: bytes, *parts: bytes) -> int:
    h = blake2b(digest_size=64, person=label)
    for p in parts:
        h.update(len(p).to_bytes(4, "big"))
        h.update(p)
    return int.from_bytes(h.digest(), "big") % JUBJUB_ORDER


def domain_separator(name: str) -> int:
    return hash_to_field(b"zknote_DomainSep", name.encode("ascii"))


def hash_to_curve(label: bytes, *parts: bytes) -> Point:
    """
    Try-and-increment hash onto the prime-order subgroup.

    The candidate v coordinate and the sign of u are read off a hash of the
    input and a counter; a solution of the curve equation is cleared of the
    cofactor. Nobody knows the discrete log of the result relative to any
    other generator.
    """
    for counter in range(256):
        digest = prf_expand(label, counter.to_bytes(4, "big"), b"".join(
            len(p).to_bytes(4, "big") + p for p in parts
        ))
        v = int.from_bytes(digest, "big") % BLS_MODULUS
        u = recover_u(v, digest[0] & 1)
        if u is None:
            continue
        point = Point.from_affine(u, v).mul_by_cofactor()
        if not point.is_identity():
            return point
    raise RuntimeError("hash_to_curve failed to find a point")


# fixed generators
SPEND_AUTH_BASEPOINT: Point = hash_to_curve(b"zknote_Generatr", b"spend_auth")
CLUE_BASEPOINT: Point = hash_to_curve(b"zknote_Generatr", b"clue_key")
