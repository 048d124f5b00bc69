"""
Key hierarchy: seed phrase -> spend key -> viewing keys -> addresses.

    SeedPhrase --bip44--> SpendKey --+--> SigningKey (spend authorization)
                                     |
                                     +--> FullViewingKey --+--> IncomingViewingKey --> Address
                                                           +--> OutgoingViewingKey

Each arrow is one-way: an IncomingViewingKey derives addresses and
recognises them, but cannot recover the spend key.
"""

import hmac
import logging
import secrets
from dataclasses import dataclass, field
from hashlib import sha512
from typing import Tuple, Union

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from mnemonic import Mnemonic

from zknote.config import DEFAULT_CONFIG
from zknote.crypto import (
    CLUE_BASEPOINT,
    HASH,
    domain_separator,
    hash_to_curve,
    hash_to_scalar,
    prf_expand,
)
from zknote.errors import InvalidKey, InvalidSeed
from zknote.jubjub import BLS_MODULUS, JUBJUB_ORDER, POINT_BYTES, Point, fr_to_bytes
from zknote.rdsa import SigningKey, VerificationKey

logger = logging.getLogger(__name__)

SEED_RANDOMNESS_BYTES = 32
SEED_PHRASE_WORDS = 24
SPEND_KEY_BYTES = 32
DIVERSIFIER_BYTES = 16
ADDRESS_BYTES = DIVERSIFIER_BYTES + 2 * POINT_BYTES
MAX_ADDRESS_INDEX = 2**128

# secp256k1 group order; BIP-32 child keys are reduced modulo it
_BIP32_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
_BIP32_HARDENED = 0x80000000

_TAG_EXPAND_SEED = b"zknote_ExpandSd"
_TAG_OVK_DK = b"zknote_DeriveOvk"
_TAG_DIVERSIFIED = b"zknote_Diversify"
_TAG_DETECTION = b"zknote_DetectKey"

IVK_DOMAIN_SEPARATOR = domain_separator("zknote.ivk")

_MNEMONIC = Mnemonic("english")


class SeedPhrase(str):
    """
    BIP-39 English seed phrase, checksum-validated on construction.
    """

    def __new__(cls, phrase: str):
        phrase = " ".join(phrase.split())
        if len(phrase.split(" ")) != SEED_PHRASE_WORDS or not _MNEMONIC.check(phrase):
            raise InvalidSeed("not a valid BIP-39 seed phrase")
        return super().__new__(cls, phrase)

    @classmethod
    def from_str(cls, phrase: str) -> "SeedPhrase":
        return cls(phrase)

    @classmethod
    def from_randomness(cls, randomness: bytes) -> "SeedPhrase":
        if len(randomness) != SEED_RANDOMNESS_BYTES:
            raise InvalidSeed(f"seed randomness must be {SEED_RANDOMNESS_BYTES} bytes, got {len(randomness)}")
        return cls(_MNEMONIC.to_mnemonic(bytes(randomness)))

    @classmethod
    def generate(cls) -> "SeedPhrase":
        return cls.from_randomness(secrets.token_bytes(SEED_RANDOMNESS_BYTES))

    def __repr__(self) -> str:
        return "SeedPhrase(<redacted>)"

    def to_seed(self) -> bytes:
        return Mnemonic.to_seed(self, passphrase="")


@dataclass(frozen=True)
class Bip44Path:
    account: int
    coin_type: int = DEFAULT_CONFIG.bip44_coin_type

    def __post_init__(self):
        if not 0 <= self.account < _BIP32_HARDENED:
            raise InvalidKey(f"account index out of range: {self.account}")

    def path(self) -> str:
        return f"m/44'/{self.coin_type}'/{self.account}'"

    def hardened_indices(self) -> Tuple[int, ...]:
        return tuple(i + _BIP32_HARDENED for i in (44, self.coin_type, self.account))


def _bip32_derive(seed: bytes, indices) -> bytes:
    digest = hmac.new(b"Bitcoin seed", seed, sha512).digest()
    key, chain_code = int.from_bytes(digest[:32], "big"), digest[32:]
    assert 0 < key < _BIP32_ORDER, "unusable master key"
    for index in indices:
        assert index >= _BIP32_HARDENED, "only hardened derivation is supported"
        data = b"\x00" + key.to_bytes(32, "big") + index.to_bytes(4, "big")
        digest = hmac.new(chain_code, data, sha512).digest()
        tweak = int.from_bytes(digest[:32], "big")
        key = (tweak + key) % _BIP32_ORDER
        # probability below 2^-127, BIP-32 says skip to the next index
        assert tweak < _BIP32_ORDER and key != 0, "invalid child key"
        chain_code = digest[32:]
    return key.to_bytes(32, "big")


@dataclass(frozen=True)
class NullifierKey:
    nk: int

    def to_bytes(self) -> bytes:
        return fr_to_bytes(self.nk)


class Diversifier(bytes):
    def __new__(cls, data: bytes):
        if len(data) != DIVERSIFIER_BYTES:
            raise InvalidKey(f"diversifier must be {DIVERSIFIER_BYTES} bytes, got {len(data)}")
        return super().__new__(cls, data)

    def diversified_generator(self) -> Point:
        return hash_to_curve(_TAG_DIVERSIFIED, bytes(self))


class DiversifierKey(bytes):
    """
    AES-128 key turning address indices into diversifiers and back.
    """

    def __new__(cls, data: bytes):
        assert len(data) == 16
        return super().__new__(cls, data)

    def _cipher(self) -> Cipher:
        return Cipher(algorithms.AES(bytes(self)), modes.ECB())

    def diversifier_for_index(self, index: int) -> Diversifier:
        if not 0 <= index < MAX_ADDRESS_INDEX:
            raise InvalidKey(f"address index out of range: {index}")
        encryptor = self._cipher().encryptor()
        return Diversifier(encryptor.update(index.to_bytes(16, "little")) + encryptor.finalize())

    def index_for_diversifier(self, diversifier: Diversifier) -> int:
        decryptor = self._cipher().decryptor()
        return int.from_bytes(decryptor.update(bytes(diversifier)) + decryptor.finalize(), "little")


class OutgoingViewingKey(bytes):
    def __new__(cls, data: bytes):
        assert len(data) == 32
        return super().__new__(cls, data)


@dataclass(frozen=True)
class DetectionKey:
    dtk: int

    def clue_key(self) -> bytes:
        return (CLUE_BASEPOINT * self.dtk).to_bytes()

    def to_bytes(self) -> bytes:
        return self.dtk.to_bytes(32, "big")


@dataclass(frozen=True)
class Address:
    """
    A diversified payment address. Construction re-validates every
    component; an Address object that exists is always well formed.
    """

    diversifier: Diversifier
    transmission_key: bytes
    clue_key: bytes
    diversified_generator: Point = field(init=False, repr=False, compare=False)
    transmission_point: Point = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "diversifier", Diversifier(self.diversifier))
        for name in ("transmission_key", "clue_key"):
            value = getattr(self, name)
            if len(value) != POINT_BYTES:
                raise InvalidKey(f"{name} must be {POINT_BYTES} bytes, got {len(value)}")
            object.__setattr__(self, name, bytes(value))

        g_d = self.diversifier.diversified_generator()
        if g_d.is_identity():
            raise InvalidKey("diversified generator is the identity")
        pk_d = Point.from_bytes(self.transmission_key)
        if pk_d is None:
            raise InvalidKey("transmission key is not a valid group element")
        if pk_d.is_identity():
            raise InvalidKey("transmission key is the identity")
        if Point.from_bytes(self.clue_key) is None:
            raise InvalidKey("clue key is not a valid group element")
        object.__setattr__(self, "diversified_generator", g_d)
        object.__setattr__(self, "transmission_point", pk_d)

    @classmethod
    def from_components(cls, diversifier: bytes, transmission_key: bytes, clue_key: bytes) -> "Address":
        return cls(Diversifier(diversifier), transmission_key, clue_key)

    def to_bytes(self) -> bytes:
        return bytes(self.diversifier) + self.transmission_key + self.clue_key

    @classmethod
    def from_bytes(cls, data: bytes) -> "Address":
        if len(data) != ADDRESS_BYTES:
            raise InvalidKey(f"address must be {ADDRESS_BYTES} bytes, got {len(data)}")
        data = bytes(data)
        return cls.from_components(
            data[:DIVERSIFIER_BYTES],
            data[DIVERSIFIER_BYTES:DIVERSIFIER_BYTES + POINT_BYTES],
            data[DIVERSIFIER_BYTES + POINT_BYTES:],
        )


@dataclass(frozen=True, repr=False)
class IncomingViewingKey:
    ivk: int
    dk: DiversifierKey

    def __repr__(self) -> str:
        return "IncomingViewingKey(<redacted>)"

    def payment_address(self, index: int) -> Tuple[Address, DetectionKey]:
        diversifier = self.dk.diversifier_for_index(index)
        g_d = diversifier.diversified_generator()
        dtk = DetectionKey(hash_to_scalar(_TAG_DETECTION, self.ivk.to_bytes(32, "big"), bytes(diversifier)))
        address = Address(
            diversifier=diversifier,
            transmission_key=(g_d * self.ivk).to_bytes(),
            clue_key=dtk.clue_key(),
        )
        return address, dtk

    def index_for_diversifier(self, diversifier: Diversifier) -> int:
        return self.dk.index_for_diversifier(diversifier)

    def views_address(self, address: Address) -> bool:
        return address.diversified_generator * self.ivk == address.transmission_point


@dataclass(frozen=True, repr=False)
class FullViewingKey:
    ak: VerificationKey
    nk: NullifierKey

    def __repr__(self) -> str:
        return "FullViewingKey(<redacted>)"

    def _ovk_dk(self) -> bytes:
        return prf_expand(_TAG_OVK_DK, self.nk.to_bytes(), self.ak.to_bytes())

    def incoming(self) -> IncomingViewingKey:
        ivk = HASH.hash(IVK_DOMAIN_SEPARATOR, [self.nk.nk, self.ak.point.u])
        return IncomingViewingKey(ivk % JUBJUB_ORDER, DiversifierKey(self._ovk_dk()[32:48]))

    def outgoing(self) -> OutgoingViewingKey:
        return OutgoingViewingKey(self._ovk_dk()[:32])

    def spend_verification_key(self) -> VerificationKey:
        return self.ak

    def nullifier_key(self) -> NullifierKey:
        return self.nk


@dataclass(frozen=True, repr=False)
class SpendKey:
    key: bytes

    def __post_init__(self):
        if len(self.key) != SPEND_KEY_BYTES:
            raise InvalidKey(f"spend key must be {SPEND_KEY_BYTES} bytes, got {len(self.key)}")
        object.__setattr__(self, "key", bytes(self.key))

    def __repr__(self) -> str:
        return "SpendKey(<redacted>)"

    @classmethod
    def from_bytes(cls, data: bytes) -> "SpendKey":
        return cls(data)

    @classmethod
    def from_seed_phrase_bip44(cls, seed_phrase: SeedPhrase, path: Bip44Path) -> "SpendKey":
        logger.debug("deriving spend key along %s", path.path())
        return cls(_bip32_derive(seed_phrase.to_seed(), path.hardened_indices()))

    def to_bytes(self) -> bytes:
        return self.key

    def spend_auth_key(self) -> SigningKey:
        ask = int.from_bytes(prf_expand(_TAG_EXPAND_SEED, self.key, b"\x00"), "big") % JUBJUB_ORDER
        return SigningKey(ask)

    def nullifier_key(self) -> NullifierKey:
        nk = int.from_bytes(prf_expand(_TAG_EXPAND_SEED, self.key, b"\x01"), "big") % BLS_MODULUS
        return NullifierKey(nk)

    def full_viewing_key(self) -> FullViewingKey:
        return FullViewingKey(self.spend_auth_key().verification_key(), self.nullifier_key())

    def incoming_viewing_key(self) -> IncomingViewingKey:
        return self.full_viewing_key().incoming()


def derive_spend_key(seed: Union[SeedPhrase, str], account_index: int) -> SpendKey:
    if not isinstance(seed, SeedPhrase):
        seed = SeedPhrase.from_str(seed)
    return SpendKey.from_seed_phrase_bip44(seed, Bip44Path(account_index))
