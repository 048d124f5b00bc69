from unittest import TestCase

from zknote.circuit import PROOF_BYTES, OutputCircuit, OutputProof, setup
from zknote.errors import ProofGenerationFailed, SerializationError, VerificationFailed
from zknote.keys import SeedPhrase, derive_spend_key
from zknote.note import Commitment, Note, Value
from zknote.snark.r1cs import ConstraintSystem

SEED = SeedPhrase.from_randomness(b"\x00" * 32)


def _note(amount=30, asset_id=1, rseed=b"\x00" * 32):
    ivk = derive_spend_key(SEED, 0).incoming_viewing_key()
    debtor, _ = ivk.payment_address(0)
    creditor, _ = ivk.payment_address(1)
    return Note.from_parts(debtor, creditor, Value(amount, asset_id), rseed)


def _synthesize(circuit):
    cs = ConstraintSystem()
    circuit.synthesize(cs)
    return cs


class TestOutputCircuit(TestCase):
    def test_dummy_is_satisfied(self):
        cs = _synthesize(OutputCircuit.dummy())
        assert cs.is_satisfied()
        self.assertEqual(cs.num_inputs, 2)

    def test_shape_does_not_depend_on_witness(self):
        a = _synthesize(OutputCircuit.dummy())
        note = _note()
        b = _synthesize(OutputCircuit.from_note(note, note.commit()))
        self.assertEqual(a.num_constraints, b.num_constraints)
        self.assertEqual(a.num_variables, b.num_variables)
        self.assertEqual(
            [tuple(lc.terms) for row in a.constraints for lc in row],
            [tuple(lc.terms) for row in b.constraints for lc in row],
        )

    def test_note_opens_commitment(self):
        note = _note()
        cs = _synthesize(OutputCircuit.from_note(note, note.commit()))
        assert cs.is_satisfied()
        self.assertEqual(cs.public_inputs, [note.commit().to_field()])

    def test_wrong_commitment(self):
        note = _note()
        cs = _synthesize(OutputCircuit.from_note(note, _note(amount=31).commit()))
        assert not cs.is_satisfied()


class TestOutputProof(TestCase):
    @classmethod
    def setUpClass(cls):
        cls.pk, cls.vk = setup()
        cls.note = _note()
        cls.commitment = cls.note.commit()
        cls.proof = OutputProof.prove(cls.pk, cls.note, cls.commitment)

    def test_verify(self):
        self.proof.verify(self.vk, self.commitment)

    def test_size(self):
        self.assertEqual(len(self.proof.to_bytes()), PROOF_BYTES)

    def test_bytes_roundtrip(self):
        OutputProof.from_bytes(self.proof.to_bytes()).verify(self.vk, self.commitment)

    def test_other_commitment(self):
        other = _note(rseed=b"\x01" * 32).commit()
        with self.assertRaises(VerificationFailed):
            self.proof.verify(self.vk, other)

    def test_prove_with_mismatched_commitment(self):
        with self.assertRaises(ProofGenerationFailed):
            OutputProof.prove(self.pk, self.note, _note(asset_id=2).commit())

    def test_malformed_proof(self):
        with self.assertRaises(SerializationError):
            OutputProof.from_bytes(self.proof.to_bytes()[:100])

    def test_malformed_commitment(self):
        with self.assertRaises(SerializationError):
            self.proof.verify(self.vk, Commitment(b"\x00" * 31))
