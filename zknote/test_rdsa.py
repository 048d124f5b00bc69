from unittest import TestCase

from zknote.errors import InvalidKey, InvalidSignature
from zknote.jubjub import JUBJUB_ORDER, Point
from zknote.keys import SpendKey
from zknote.rdsa import (
    SIGNATURE_BYTES,
    VERIFICATION_KEY_BYTES,
    Signature,
    SigningKey,
    VerificationKey,
    generate_randomizer,
    verify,
)

MESSAGE = b"note commitment"


class TestRdsa(TestCase):
    def setUp(self):
        self.ask = SpendKey.from_bytes(b"\x2a" * 32).spend_auth_key()

    def test_sign_verify(self):
        vk = self.ask.verification_key()
        sig = self.ask.sign(MESSAGE)
        assert vk.verify(MESSAGE, sig)
        assert verify(vk.to_bytes(), MESSAGE, sig.to_bytes())

    def test_sizes(self):
        self.assertEqual(len(self.ask.sign(MESSAGE).to_bytes()), SIGNATURE_BYTES)
        self.assertEqual(len(self.ask.sign(b"").to_bytes()), SIGNATURE_BYTES)
        self.assertEqual(len(self.ask.verification_key().to_bytes()), VERIFICATION_KEY_BYTES)

    def test_wrong_message(self):
        vk = self.ask.verification_key()
        sig = self.ask.sign(MESSAGE)
        assert not vk.verify(MESSAGE + b"!", sig)

    def test_wrong_key(self):
        other = SigningKey(12345).verification_key()
        assert not other.verify(MESSAGE, self.ask.sign(MESSAGE))

    def test_every_flipped_byte_is_rejected(self):
        vk = self.ask.verification_key().to_bytes()
        sig = self.ask.sign(MESSAGE).to_bytes()
        for i in range(SIGNATURE_BYTES):
            tampered = bytearray(sig)
            tampered[i] ^= 1
            self.assertFalse(verify(vk, MESSAGE, bytes(tampered)), f"byte {i}")

    def test_nonces_are_fresh(self):
        s1, s2 = self.ask.sign(MESSAGE), self.ask.sign(MESSAGE)
        self.assertNotEqual(s1.r_bytes, s2.r_bytes)

    def test_fixed_rng_is_deterministic(self):
        rng = lambda n: b"\x01" * n
        self.assertEqual(self.ask.sign(MESSAGE, rng), self.ask.sign(MESSAGE, rng))

    def test_randomized_keys(self):
        alpha = generate_randomizer()
        rsk = self.ask.randomize(alpha)
        rk = rsk.verification_key()
        sig = rsk.sign(MESSAGE)
        assert rk.verify(MESSAGE, sig)
        assert not self.ask.verification_key().verify(MESSAGE, sig)
        self.assertNotEqual(rk.to_bytes(), self.ask.verification_key().to_bytes())
        self.assertNotEqual(rk.to_bytes(), self.ask.randomize(generate_randomizer()).verification_key().to_bytes())

    def test_randomize_is_additive(self):
        self.assertEqual(self.ask.randomize(5).randomize(7).sk, self.ask.randomize(12).sk)
        self.assertEqual(SigningKey(JUBJUB_ORDER - 1).randomize(1).sk, 0)

    def test_signing_key_bytes(self):
        self.assertEqual(SigningKey.from_bytes(self.ask.to_bytes()), self.ask)
        with self.assertRaises(InvalidKey):
            SigningKey.from_bytes(JUBJUB_ORDER.to_bytes(32, "big"))
        self.assertNotIn(str(self.ask.sk), repr(self.ask))


class TestEncodings(TestCase):
    def setUp(self):
        ask = SigningKey(99)
        self.vk = ask.verification_key().to_bytes()
        self.sig = ask.sign(MESSAGE).to_bytes()

    def test_verification_key_length(self):
        with self.assertRaises(InvalidKey):
            verify(self.vk[:-1], MESSAGE, self.sig)

    def test_verification_key_identity(self):
        with self.assertRaises(InvalidKey):
            VerificationKey.from_bytes(Point.identity().to_bytes())

    def test_verification_key_not_a_point(self):
        with self.assertRaises(InvalidKey):
            VerificationKey.from_bytes(b"\xff" * 32)

    def test_signature_length(self):
        for n in [0, 63, 65]:
            with self.assertRaises(InvalidSignature):
                verify(self.vk, MESSAGE, b"\x00" * n)

    def test_signature_scalar_not_canonical(self):
        sig = Signature.from_bytes(self.sig)
        wrapped = Signature(sig.r_bytes, sig.z + JUBJUB_ORDER).to_bytes()
        self.assertFalse(verify(self.vk, MESSAGE, wrapped))

    def test_signature_commitment_not_a_point(self):
        self.assertFalse(verify(self.vk, MESSAGE, b"\xff" * 32 + self.sig[32:]))
        self.assertFalse(verify(self.vk, MESSAGE, b"\x00" * SIGNATURE_BYTES))

    def test_roundtrip(self):
        sig = Signature.from_bytes(self.sig)
        self.assertEqual(sig.to_bytes(), self.sig)
        assert verify(self.vk, MESSAGE, self.sig)
