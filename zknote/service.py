"""
Entry points for wallets: key generation, note creation, spend
authorization and output proofs, on top of one immutable Groth16 key pair.

A NoteService holds no mutable state besides the prover semaphore, so one
instance can be shared by any number of threads. Only `prove_note` is
throttled; everything else runs unsynchronized.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Union

from zknote import circuit
from zknote.circuit import OutputProof
from zknote.config import DEFAULT_CONFIG, Config
from zknote.errors import ProverBusy
from zknote.keys import Address, Bip44Path, SeedPhrase, SpendKey
from zknote.note import Commitment, Note, Rseed, Value
from zknote.rdsa import Signature, VerificationKey, generate_randomizer
from zknote.snark.groth16 import ProvingKey, VerifyingKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True, repr=False)
class KeyPair:
    spend_key: bytes
    # the nullifier key, which is all a watch-only wallet needs besides addresses
    view_key: bytes

    def __repr__(self) -> str:
        return "KeyPair(<redacted>)"


@dataclass(frozen=True)
class SignedNote:
    note: Note
    commitment: Commitment
    signature: bytes
    verification_key: bytes


class NoteService:
    def __init__(self, proving_key: ProvingKey, verifying_key: VerifyingKey, config: Config = DEFAULT_CONFIG):
        assert config.max_concurrent_proofs > 0
        self._pk = proving_key
        self._vk = verifying_key
        self.config = config
        self._provers = threading.BoundedSemaphore(config.max_concurrent_proofs)

    @classmethod
    def setup(cls, config: Config = DEFAULT_CONFIG) -> "NoteService":
        pk, vk = circuit.setup()
        return cls(pk, vk, config)

    @property
    def verifying_key(self) -> VerifyingKey:
        return self._vk

    def _spend_key(self, seed_phrase: Union[SeedPhrase, str]) -> SpendKey:
        if not isinstance(seed_phrase, SeedPhrase):
            seed_phrase = SeedPhrase.from_str(seed_phrase)
        return SpendKey.from_seed_phrase_bip44(seed_phrase, Bip44Path(0, self.config.bip44_coin_type))

    def generate_keys(self, seed_phrase: Union[SeedPhrase, str]) -> KeyPair:
        spend_key = self._spend_key(seed_phrase)
        return KeyPair(
            spend_key=spend_key.to_bytes(),
            view_key=spend_key.full_viewing_key().nullifier_key().to_bytes(),
        )

    def generate_address(self, spend_key: bytes, index: int) -> Address:
        address, _ = SpendKey.from_bytes(spend_key).incoming_viewing_key().payment_address(index)
        return address

    def create_note(
            self,
            debtor: Union[Address, bytes],
            creditor: Union[Address, bytes],
            amount: int,
            asset_id: int,
            rseed: Optional[bytes] = None,
    ) -> Note:
        if not isinstance(debtor, Address):
            debtor = Address.from_bytes(debtor)
        if not isinstance(creditor, Address):
            creditor = Address.from_bytes(creditor)
        if rseed is None:
            rseed = Rseed.generate()
        return Note.from_parts(debtor, creditor, Value(amount, asset_id), rseed)

    def sign_note(
            self,
            seed_phrase: Union[SeedPhrase, str],
            note: Note,
            randomizer: Optional[int] = None,
    ) -> SignedNote:
        """
        Sign the note commitment under a freshly randomized spend
        authorization key. Passing `randomizer` is only useful when the
        caller needs to prove knowledge of it later.
        """
        if randomizer is None:
            randomizer = generate_randomizer()
        rsk = self._spend_key(seed_phrase).spend_auth_key().randomize(randomizer)
        commitment = note.commit()
        return SignedNote(
            note=note,
            commitment=commitment,
            signature=rsk.sign(bytes(commitment)).to_bytes(),
            verification_key=rsk.verification_key().to_bytes(),
        )

    def verify_signature(self, verification_key: bytes, commitment: bytes, signature: bytes) -> bool:
        vk = VerificationKey.from_bytes(verification_key)
        return vk.verify(bytes(commitment), Signature.from_bytes(signature))

    def prove_note(self, note: Note, blocking: bool = True, timeout: Optional[float] = None) -> bytes:
        acquired = self._provers.acquire(True, timeout) if blocking else self._provers.acquire(False)
        if not acquired:
            logger.debug("all %d provers busy", self.config.max_concurrent_proofs)
            raise ProverBusy(f"{self.config.max_concurrent_proofs} proofs already in progress")
        try:
            return OutputProof.prove(self._pk, note, note.commit()).to_bytes()
        finally:
            self._provers.release()

    def verify_proof(self, commitment: bytes, proof: bytes):
        OutputProof.from_bytes(proof).verify(self._vk, Commitment.from_bytes(commitment))
