from typing import Tuple

from zknote.jubjub import BLS_MODULUS, PRIMITIVE_ROOT


def compute_root_of_unity(order: int, primitive_root: int = PRIMITIVE_ROOT, modulus: int = BLS_MODULUS) -> int:
    """
    Generate a w such that ``w**order = 1``.
    """
    assert (modulus - 1) % order == 0
    return pow(primitive_root, (modulus - 1) // order, modulus)


def compute_roots_of_unity(order: int, primitive_root: int = PRIMITIVE_ROOT, modulus: int = BLS_MODULUS) -> Tuple[int, ...]:
    """
    Compute the list of powers of a root of unity of the given order.
    The order must divide the multiplicative group order, i.e. BLS_MODULUS - 1
    """
    root_of_unity = compute_root_of_unity(order, primitive_root, modulus)

    roots = []
    current_root_of_unity = 1
    for _ in range(order):
        roots.append(current_root_of_unity)
        current_root_of_unity = current_root_of_unity * root_of_unity % modulus
    return tuple(roots)
