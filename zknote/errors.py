class ZkNoteError(Exception):
    pass


class InvalidSeed(ZkNoteError):
    pass


class InvalidKey(ZkNoteError):
    pass


class InvalidNote(ZkNoteError):
    pass


class InvalidSignature(ZkNoteError):
    pass


class SerializationError(ZkNoteError):
    pass


class ProofGenerationFailed(ZkNoteError):
    pass


class VerificationFailed(ZkNoteError):
    pass


class ProverBusy(ZkNoteError):
    """
    All prover slots are taken. Transient: the caller may retry.
    """
