from random import randrange
from unittest import TestCase

from zknote.jubjub import BLS_MODULUS, PRIMITIVE_ROOT

from zknote.snark.fft import coset_fft, coset_ifft, fft, ifft
from zknote.snark.roots import compute_roots_of_unity


def _eval(coefficients, x):
    return sum(c * pow(x, i, BLS_MODULUS) for i, c in enumerate(coefficients)) % BLS_MODULUS


class TestFFT(TestCase):
    def test_fft_ifft(self):
        for size in [2, 16, 32, 64, 128, 256, 512]:
            roots_of_unity = compute_roots_of_unity(size)
            vals = list(x for x in range(size))
            vals_fft = fft(vals, roots_of_unity)
            self.assertEqual(vals, ifft(vals_fft, roots_of_unity))

    def test_roots_have_exact_order(self):
        roots = compute_roots_of_unity(64)
        self.assertEqual(len(set(roots)), 64)
        self.assertEqual(pow(roots[1], 64, BLS_MODULUS), 1)
        self.assertNotEqual(pow(roots[1], 32, BLS_MODULUS), 1)

    def test_fft_evaluates_polynomial(self):
        roots = compute_roots_of_unity(16)
        coefficients = [randrange(BLS_MODULUS) for _ in range(16)]
        evaluations = fft(coefficients, roots)
        for root, evaluation in zip(roots, evaluations):
            self.assertEqual(_eval(coefficients, root), evaluation)

    def test_coset_fft(self):
        roots = compute_roots_of_unity(16)
        coefficients = [randrange(BLS_MODULUS) for _ in range(16)]
        evaluations = coset_fft(coefficients, roots)
        for root, evaluation in zip(roots, evaluations):
            self.assertEqual(_eval(coefficients, PRIMITIVE_ROOT * root % BLS_MODULUS), evaluation)
        self.assertEqual(coset_ifft(evaluations, roots), coefficients)
