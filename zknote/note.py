import secrets
from dataclasses import dataclass

from zknote.crypto import HASH, domain_separator, prf_expand
from zknote.errors import InvalidKey, InvalidNote, SerializationError
from zknote.jubjub import BLS_MODULUS, FIELD_BYTES, fr_from_bytes, fr_to_bytes
from zknote.keys import ADDRESS_BYTES, Address

AMOUNT_BITS = 64
MAX_AMOUNT = 2**AMOUNT_BITS - 1
RSEED_BYTES = 32
COMMITMENT_BYTES = FIELD_BYTES
NOTE_BYTES = 2 * ADDRESS_BYTES + 8 + FIELD_BYTES + RSEED_BYTES

NOTE_COMMITMENT_DOMAIN_SEPARATOR = domain_separator("zknote.notecommit")

_TAG_NOTE_BLINDING = b"zknote_NoteBlind"


@dataclass(frozen=True)
class Value:
    amount: int
    asset_id: int

    def __post_init__(self):
        if not isinstance(self.amount, int) or not 0 <= self.amount <= MAX_AMOUNT:
            raise InvalidNote(f"amount must be an unsigned {AMOUNT_BITS}-bit integer, got {self.amount!r}")
        if not isinstance(self.asset_id, int) or not 0 <= self.asset_id < BLS_MODULUS:
            raise InvalidNote("asset id is not a canonical field element")

    def __add__(self, other: "Value") -> "Value":
        if not isinstance(other, Value):
            return NotImplemented
        if other.asset_id != self.asset_id:
            raise InvalidNote("cannot add values of different assets")
        # Value() rejects the overflow
        return Value(self.amount + other.amount, self.asset_id)


class Rseed(bytes):
    """
    Per-note randomness, the only source of hiding for the commitment.
    """

    def __new__(cls, data: bytes):
        if len(data) != RSEED_BYTES:
            raise InvalidNote(f"rseed must be {RSEED_BYTES} bytes, got {len(data)}")
        return super().__new__(cls, data)

    @classmethod
    def generate(cls) -> "Rseed":
        return cls(secrets.token_bytes(RSEED_BYTES))

    def note_blinding(self) -> int:
        return int.from_bytes(prf_expand(_TAG_NOTE_BLINDING, bytes(self), b"\x04"), "big") % BLS_MODULUS


class Commitment(bytes):
    def __new__(cls, data: bytes):
        if len(data) != COMMITMENT_BYTES:
            raise SerializationError(f"commitment must be {COMMITMENT_BYTES} bytes, got {len(data)}")
        if fr_from_bytes(bytes(data)) is None:
            raise SerializationError("commitment is not a canonical field element")
        return super().__new__(cls, data)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Commitment":
        return cls(data)

    @classmethod
    def from_field(cls, x: int) -> "Commitment":
        return cls(fr_to_bytes(x))

    def to_field(self) -> int:
        return int.from_bytes(self, "big")


def note_commitment(blinding: int, value: Value, creditor: Address) -> int:
    """
    Poseidon(ds, [blinding, amount, asset id, u(g_d), u(pk_d)]) over the
    creditor address.

    The debtor address is not an input: two notes that differ only in their
    debtor have the same commitment. The output circuit still checks the
    debtor generator for curve membership and non-identity, but that witness
    is not bound to the public commitment.
    """
    g_d = creditor.diversified_generator
    pk_d = creditor.transmission_point
    return HASH.hash(
        NOTE_COMMITMENT_DOMAIN_SEPARATOR,
        [blinding, value.amount, value.asset_id, g_d.u, pk_d.u],
    )


@dataclass(frozen=True)
class Note:
    """
    A payment from `debtor` to `creditor`. The note must be kept by its
    creator until every proof over it has been produced: the commitment
    alone cannot be opened.
    """

    debtor: Address
    creditor: Address
    value: Value
    rseed: Rseed

    @classmethod
    def from_parts(cls, debtor: Address, creditor: Address, value: Value, rseed: bytes) -> "Note":
        if not isinstance(debtor, Address) or not isinstance(creditor, Address):
            raise InvalidNote("debtor and creditor must be addresses")
        if not isinstance(value, Value):
            raise InvalidNote(f"value must be a Value, got {type(value).__name__}")
        return cls(debtor, creditor, value, Rseed(rseed))

    @property
    def amount(self) -> int:
        return self.value.amount

    @property
    def asset_id(self) -> int:
        return self.value.asset_id

    def note_blinding(self) -> int:
        return self.rseed.note_blinding()

    def commit(self) -> Commitment:
        return Commitment.from_field(note_commitment(self.note_blinding(), self.value, self.creditor))

    def to_bytes(self) -> bytes:
        return b"".join((
            self.debtor.to_bytes(),
            self.creditor.to_bytes(),
            self.value.amount.to_bytes(8, "big"),
            fr_to_bytes(self.value.asset_id),
            bytes(self.rseed),
        ))

    @classmethod
    def from_bytes(cls, data: bytes) -> "Note":
        if len(data) != NOTE_BYTES:
            raise SerializationError(f"note must be {NOTE_BYTES} bytes, got {len(data)}")
        data = bytes(data)
        debtor, creditor = data[:ADDRESS_BYTES], data[ADDRESS_BYTES:2 * ADDRESS_BYTES]
        rest = data[2 * ADDRESS_BYTES:]
        asset_id = fr_from_bytes(rest[8:8 + FIELD_BYTES])
        if asset_id is None:
            raise InvalidNote("asset id is not a canonical field element")
        try:
            debtor, creditor = Address.from_bytes(debtor), Address.from_bytes(creditor)
        except InvalidKey as e:
            raise InvalidNote(f"invalid address: {e}") from e
        return cls.from_parts(
            debtor,
            creditor,
            Value(int.from_bytes(rest[:8], "big"), asset_id),
            rest[8 + FIELD_BYTES:],
        )
