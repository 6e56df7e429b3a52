"""
Membership Proof Exceptions
"""


class ZKError(Exception):
    """Base exception for membership proofs"""
    pass


class MalformedInput(ZKError, ValueError):
    """Serialized public input has the wrong length or an invalid field"""
    pass


class DepthMismatch(ZKError):
    """Merkle proof depth differs from the configured tree depth"""
    pass


class WitnessGenError(ZKError):
    """Witness generation rejected the inputs"""
    pass


class CircuitUnavailable(ZKError):
    """Circuit or witness program could not be loaded"""
    pass


class ProvingError(ZKError):
    """Proving backend failed"""
    pass


class ProofInvalid(ZKError):
    pass


class BindingInvalid(ProofInvalid):
    """Circuit public input does not match the signature and message"""
    pass
