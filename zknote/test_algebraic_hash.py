from unittest import TestCase

import poseidon

from zknote.algebraic_hash import Poseidon
from zknote.config import DEFAULT_CONFIG, PoseidonConfig
from zknote.crypto import HASH
from zknote.jubjub import BLS_MODULUS


class TestPoseidon(TestCase):
    def test_shape(self):
        self.assertEqual(HASH.width, 6)
        self.assertEqual(HASH.rate, 5)
        self.assertEqual(HASH.full_rounds, 8)
        self.assertEqual(HASH.partial_rounds, 57)
        self.assertEqual(len(HASH.round_constants), 65)
        assert all(len(row) == 6 for row in HASH.round_constants)
        assert all(0 <= c < BLS_MODULUS for row in HASH.round_constants for c in row)
        self.assertEqual(len(HASH.mds), 6)
        assert all(len(row) == 6 for row in HASH.mds)

    def test_round_schedule(self):
        full = [r for r in range(65) if HASH.is_full_round(r)]
        self.assertEqual(full, [0, 1, 2, 3, 61, 62, 63, 64])

    def test_matches_reference_permutation(self):
        reference = poseidon.Poseidon(p=BLS_MODULUS, security_level=128, alpha=5, input_rate=5, t=6)
        for inputs in ([1, 2, 3, 4, 5], [0, 0, 0, 0, 0], [BLS_MODULUS - 1, 7, 0, 11, 13]):
            expected = int(reference.run_hash(list(inputs)))
            self.assertEqual(HASH.permute([*inputs, 0])[1], expected)
            self.assertEqual(HASH.hash(inputs[0], inputs[1:]), expected)

    def test_deterministic(self):
        h1 = HASH.hash(1, [2, 3, 4])
        h2 = HASH.hash(1, [2, 3, 4])
        self.assertEqual(h1, h2)
        assert 0 <= h1 < BLS_MODULUS

    def test_sensitive_to_every_input(self):
        base = HASH.hash(1, [2, 3, 4, 5, 6])
        self.assertNotEqual(base, HASH.hash(0, [2, 3, 4, 5, 6]))
        for i in range(5):
            inputs = [2, 3, 4, 5, 6]
            inputs[i] += 1
            self.assertNotEqual(base, HASH.hash(1, inputs))

    def test_padding_is_explicit_zero(self):
        self.assertEqual(HASH.hash(1, [2, 3]), HASH.hash(1, [2, 3, 0, 0, 0]))

    def test_too_many_inputs(self):
        with self.assertRaises(AssertionError):
            HASH.hash(1, [0] * 6)

    def test_permutation_is_not_identity(self):
        state = [0] * 6
        self.assertNotEqual(HASH.permute(state), state)

    def test_config_selects_parameters(self):
        self.assertEqual(Poseidon(DEFAULT_CONFIG.poseidon).hash(1, [2]), HASH.hash(1, [2]))
        narrow = Poseidon(PoseidonConfig(width=3, alpha=5, security_level=128))
        self.assertEqual(narrow.rate, 2)
        self.assertNotEqual(narrow.hash(1, [2]), HASH.hash(1, [2]))
