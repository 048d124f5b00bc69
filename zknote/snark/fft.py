from typing import List, Sequence

from zknote.jubjub import BLS_MODULUS, PRIMITIVE_ROOT


def _fft(vals: Sequence[int], roots_of_unity: Sequence[int], modulus: int) -> List[int]:
    if len(vals) == 1:
        return list(vals)
    L = _fft(vals[::2], roots_of_unity[::2], modulus)
    R = _fft(vals[1::2], roots_of_unity[::2], modulus)
    o = [0] * len(vals)
    for i, (x, y) in enumerate(zip(L, R)):
        y_times_root = y * roots_of_unity[i] % modulus
        o[i] = (x + y_times_root) % modulus
        o[i + len(L)] = (x - y_times_root) % modulus
    return o


def fft(vals: Sequence[int], roots_of_unity: Sequence[int], modulus: int = BLS_MODULUS) -> List[int]:
    """Coefficients -> evaluations over the roots of unity."""
    assert len(vals) == len(roots_of_unity)
    return _fft(vals, roots_of_unity, modulus)


def ifft(vals: Sequence[int], roots_of_unity: Sequence[int], modulus: int = BLS_MODULUS) -> List[int]:
    """Evaluations over the roots of unity -> coefficients."""
    assert len(vals) == len(roots_of_unity)
    # modular inverse
    invlen = pow(len(vals), modulus - 2, modulus)
    return [
        x * invlen % modulus
        for x in _fft(vals, [roots_of_unity[0], *roots_of_unity[:0:-1]], modulus)
    ]


def coset_fft(
        coefficients: Sequence[int],
        roots_of_unity: Sequence[int],
        shift: int = PRIMITIVE_ROOT,
        modulus: int = BLS_MODULUS,
) -> List[int]:
    """Evaluate over the coset shift * <w> instead of <w> itself."""
    shifted, power = [], 1
    for c in coefficients:
        shifted.append(c * power % modulus)
        power = power * shift % modulus
    return fft(shifted, roots_of_unity, modulus)


def coset_ifft(
        vals: Sequence[int],
        roots_of_unity: Sequence[int],
        shift: int = PRIMITIVE_ROOT,
        modulus: int = BLS_MODULUS,
) -> List[int]:
    coefficients = ifft(vals, roots_of_unity, modulus)
    shift_inv = pow(shift, modulus - 2, modulus)
    unshifted, power = [], 1
    for c in coefficients:
        unshifted.append(c * power % modulus)
        power = power * shift_inv % modulus
    return unshifted
