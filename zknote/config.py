import os
from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class PoseidonConfig:
    # state width, the first element is the capacity
    width: int
    alpha: int
    # round numbers follow from the security level
    security_level: int

    @property
    def rate(self) -> int:
        return self.width - 1


@dataclass(frozen=True)
class Config:
    poseidon: PoseidonConfig

    # BIP-44 path used for spend key derivation: m/44'/coin_type'/account'
    bip44_coin_type: int

    # Upper bound on concurrently running `prove` calls, shared by all
    # callers of one NoteService.
    max_concurrent_proofs: int = field(default_factory=lambda: os.cpu_count() or 1)

    @staticmethod
    def zknote_v0_1() -> "Config":
        return Config(
            poseidon=PoseidonConfig(
                width=6,
                alpha=5,
                security_level=128,
            ),
            bip44_coin_type=6532,
        )

    def replace(self, **kwarg) -> "Config":
        return replace(self, **kwarg)


DEFAULT_CONFIG = Config.zknote_v0_1()
