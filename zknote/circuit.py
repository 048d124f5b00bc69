"""
The output relation: "the public commitment opens to a note I know, whose
addresses carry non-identity diversified generators".
"""

import secrets
from dataclasses import dataclass

from py_ecc.optimized_bls12_381 import curve_order

from zknote.crypto import HASH
from zknote.errors import VerificationFailed
from zknote.jubjub import Point
from zknote.keys import SpendKey
from zknote.note import AMOUNT_BITS, NOTE_COMMITMENT_DOMAIN_SEPARATOR, Commitment, Note, Value
from zknote.snark import groth16
from zknote.snark.gadgets import alloc_point, assert_nonidentity, enforce_range, poseidon_hash_var
from zknote.snark.r1cs import ONE, ConstraintSystem

PROOF_BYTES = groth16.PROOF_BYTES

# the setup only needs the circuit shape; any valid note will do
_DUMMY_SPEND_KEY = b"\x00" * 32


@dataclass(frozen=True)
class OutputCircuit:
    commitment: int
    note_blinding: int
    value: Value
    debtor_generator: Point
    creditor_generator: Point
    creditor_transmission_key: Point

    @classmethod
    def from_note(cls, note: Note, commitment: Commitment) -> "OutputCircuit":
        return cls(
            commitment=commitment.to_field(),
            note_blinding=note.note_blinding(),
            value=note.value,
            debtor_generator=note.debtor.diversified_generator,
            creditor_generator=note.creditor.diversified_generator,
            creditor_transmission_key=note.creditor.transmission_point,
        )

    @classmethod
    def dummy(cls) -> "OutputCircuit":
        address, _ = SpendKey(_DUMMY_SPEND_KEY).incoming_viewing_key().payment_address(0)
        note = Note.from_parts(address, address, Value(0, 0), b"\x00" * 32)
        return cls.from_note(note, note.commit())

    def synthesize(self, cs: ConstraintSystem):
        commitment = cs.alloc_input(self.commitment)

        blinding = cs.alloc(self.note_blinding)
        amount = cs.alloc(self.value.amount)
        asset_id = cs.alloc(self.value.asset_id)
        enforce_range(cs, amount, AMOUNT_BITS)

        # not hashed below, so only checked for well-formedness
        debtor_g_u, _ = alloc_point(cs, *self.debtor_generator.affine())
        creditor_g_u, _ = alloc_point(cs, *self.creditor_generator.affine())
        creditor_pk_u, _ = alloc_point(cs, *self.creditor_transmission_key.affine())
        for u in (debtor_g_u, creditor_g_u, creditor_pk_u):
            assert_nonidentity(cs, u)

        computed = poseidon_hash_var(
            cs,
            HASH,
            NOTE_COMMITMENT_DOMAIN_SEPARATOR,
            [blinding, amount, asset_id, creditor_g_u, creditor_pk_u],
        )
        cs.enforce(computed, ONE, commitment)


def setup():
    """Run the trusted setup for the output circuit."""
    return groth16.generate_setup_params(OutputCircuit.dummy())


def _random_scalar() -> int:
    return secrets.randbelow(curve_order)


@dataclass(frozen=True)
class OutputProof:
    proof: groth16.Proof

    @classmethod
    def prove(cls, pk: groth16.ProvingKey, note: Note, commitment: Commitment) -> "OutputProof":
        circuit = OutputCircuit.from_note(note, commitment)
        return cls(groth16.prove(_random_scalar(), _random_scalar(), pk, circuit))

    def verify(self, vk: groth16.VerifyingKey, commitment: Commitment):
        if not groth16.verify(vk, [commitment.to_field()], self.proof):
            raise VerificationFailed("output proof does not verify against the commitment")

    def to_bytes(self) -> bytes:
        return self.proof.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "OutputProof":
        return cls(groth16.Proof.from_bytes(data))

