"""
Rerandomizable Schnorr signatures over the Jubjub prime-order subgroup.

A signing key `sk` may be shifted by a secret randomizer `alpha`:
rsk = sk + alpha, rk = rsk * B. Signatures under `rsk` verify against `rk`
only, and `rk` values for different randomizers are unlinkable without
knowledge of `alpha`.

Nonces are hedged: every call to `sign` hashes fresh randomness together
with the verification key and the message. A repeated nonce under one key
and two messages reveals the key, so the randomness source is not optional.
"""

import secrets
from dataclasses import dataclass
from typing import Callable

from zknote.crypto import SPEND_AUTH_BASEPOINT, hash_to_scalar
from zknote.errors import InvalidKey, InvalidSignature
from zknote.jubjub import JUBJUB_ORDER, POINT_BYTES, Point

SIGNATURE_BYTES = 64
VERIFICATION_KEY_BYTES = POINT_BYTES
SCALAR_BYTES = 32

_NONCE_RANDOMNESS_BYTES = 80
_TAG_NONCE = b"zknote_RdsaNonce"
_TAG_CHALLENGE = b"zknote_RdsaChall"

Rng = Callable[[int], bytes]


def generate_randomizer(rng: Rng = secrets.token_bytes) -> int:
    """Fresh spend authorization randomizer; never reuse one across contexts."""
    return int.from_bytes(rng(64), "big") % JUBJUB_ORDER


@dataclass(frozen=True)
class VerificationKey:
    point: Point

    def to_bytes(self) -> bytes:
        return self.point.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "VerificationKey":
        if len(data) != VERIFICATION_KEY_BYTES:
            raise InvalidKey(f"verification key must be {VERIFICATION_KEY_BYTES} bytes, got {len(data)}")
        point = Point.from_bytes(bytes(data))
        if point is None or point.is_identity():
            raise InvalidKey("verification key is not a valid group element")
        return cls(point)

    def verify(self, message: bytes, signature: "Signature") -> bool:
        if signature.z >= JUBJUB_ORDER:
            return False
        r_point = Point.from_bytes(signature.r_bytes)
        if r_point is None:
            return False
        c = hash_to_scalar(_TAG_CHALLENGE, signature.r_bytes, self.to_bytes(), message)
        return SPEND_AUTH_BASEPOINT * signature.z == r_point + self.point * c


@dataclass(frozen=True)
class Signature:
    r_bytes: bytes
    z: int

    def to_bytes(self) -> bytes:
        return self.r_bytes + self.z.to_bytes(SCALAR_BYTES, "big")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Signature":
        if len(data) != SIGNATURE_BYTES:
            raise InvalidSignature(f"signature must be {SIGNATURE_BYTES} bytes, got {len(data)}")
        # R and z are only interpreted by verify, a bad encoding fails there
        data = bytes(data)
        return cls(data[:POINT_BYTES], int.from_bytes(data[POINT_BYTES:], "big"))


@dataclass(frozen=True, repr=False)
class SigningKey:
    sk: int

    def __post_init__(self):
        assert 0 <= self.sk < JUBJUB_ORDER

    def __repr__(self) -> str:
        return "SigningKey(<redacted>)"

    def to_bytes(self) -> bytes:
        return self.sk.to_bytes(SCALAR_BYTES, "big")

    @classmethod
    def from_bytes(cls, data: bytes) -> "SigningKey":
        if len(data) != SCALAR_BYTES:
            raise InvalidKey(f"signing key must be {SCALAR_BYTES} bytes, got {len(data)}")
        sk = int.from_bytes(data, "big")
        if sk >= JUBJUB_ORDER:
            raise InvalidKey("signing key is not a canonical scalar")
        return cls(sk)

    def verification_key(self) -> VerificationKey:
        return VerificationKey(SPEND_AUTH_BASEPOINT * self.sk)

    def randomize(self, randomizer: int) -> "SigningKey":
        return SigningKey((self.sk + randomizer) % JUBJUB_ORDER)

    def sign(self, message: bytes, rng: Rng = secrets.token_bytes) -> Signature:
        vk_bytes = self.verification_key().to_bytes()
        randomness = rng(_NONCE_RANDOMNESS_BYTES)
        assert len(randomness) == _NONCE_RANDOMNESS_BYTES
        nonce = hash_to_scalar(_TAG_NONCE, randomness, vk_bytes, message)
        r_bytes = (SPEND_AUTH_BASEPOINT * nonce).to_bytes()
        c = hash_to_scalar(_TAG_CHALLENGE, r_bytes, vk_bytes, message)
        return Signature(r_bytes, (nonce + c * self.sk) % JUBJUB_ORDER)


def verify(vk: bytes, message: bytes, signature: bytes) -> bool:
    """
    Verify a signature given as raw bytes.

    A key or signature of the wrong length raises InvalidKey / InvalidSignature.
    Any 64 bytes that do not form a valid signature under the key return False.
    """
    return VerificationKey.from_bytes(vk).verify(message, Signature.from_bytes(signature))
