from unittest import TestCase

from hypothesis import given, settings, strategies as st

from zknote.crypto import SPEND_AUTH_BASEPOINT, hash_to_curve
from zknote.jubjub import (
    BLS_MODULUS,
    JUBJUB_ORDER,
    Point,
    fr_from_bytes,
    fr_sqrt,
    fr_to_bytes,
    is_on_curve,
)

B = SPEND_AUTH_BASEPOINT


@st.composite
def scalar(draw):
    return draw(st.integers(min_value=0, max_value=JUBJUB_ORDER - 1))


class TestField(TestCase):
    def test_sqrt(self):
        for x in [0, 1, 4, 9, 7 * 7, 123456789 ** 2]:
            r = fr_sqrt(x)
            self.assertIsNotNone(r)
            self.assertEqual(r * r % BLS_MODULUS, x % BLS_MODULUS)

    def test_sqrt_of_non_residue(self):
        # 7 generates the multiplicative group, so it is not a square
        self.assertIsNone(fr_sqrt(7))

    def test_canonical_encoding(self):
        self.assertEqual(fr_from_bytes(fr_to_bytes(42)), 42)
        self.assertIsNone(fr_from_bytes(BLS_MODULUS.to_bytes(32, "big")))
        self.assertIsNone(fr_from_bytes(b"\x01" * 31))


class TestPoint(TestCase):
    def test_generator_is_valid(self):
        assert is_on_curve(*B.affine())
        assert not B.is_identity()
        assert B.is_torsion_free()
        assert (B * JUBJUB_ORDER).is_identity()

    def test_identity(self):
        identity = Point.identity()
        self.assertEqual(identity.affine(), (0, 1))
        self.assertEqual(B + identity, B)
        self.assertEqual(B - B, identity)

    @given(a=scalar(), b=scalar())
    @settings(max_examples=5, deadline=None)
    def test_scalar_mul_distributes(self, a, b):
        self.assertEqual(B * a + B * b, B * ((a + b) % JUBJUB_ORDER))

    @given(a=scalar())
    @settings(max_examples=5, deadline=None)
    def test_encoding_roundtrip(self, a):
        p = B * a
        self.assertEqual(Point.from_bytes(p.to_bytes()), p)

    def test_rejects_bad_encodings(self):
        self.assertIsNone(Point.from_bytes(b"\x00" * 31))
        # whatever decodes must lie in the prime order subgroup
        for v in range(2, 20):
            p = Point.from_bytes(v.to_bytes(32, "big"))
            if p is not None:
                assert p.is_torsion_free()

    def test_rejects_small_order_points(self):
        # (0, -1) has order two
        encoded = (BLS_MODULUS - 1).to_bytes(32, "big")
        self.assertIsNone(Point.from_bytes(encoded))

    def test_hash_to_curve(self):
        p1 = hash_to_curve(b"zknote_test", b"a")
        p2 = hash_to_curve(b"zknote_test", b"a")
        p3 = hash_to_curve(b"zknote_test", b"b")
        assert p1 == p2
        assert p1 != p3
        assert p1.is_torsion_free()
