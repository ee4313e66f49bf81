"""
arload Exceptions.

All arload exceptions inherit from ArloadError for easy catching.
"""


class ArloadError(Exception):
    """Base exception for all arload errors."""
    
    def __init__(self, message: str, code: str = "ARLOAD_ERROR"):
        super().__init__(message)
        self.code = code
        self.message = message


class MalformedInputError(ArloadError):
    """Input lengths or values are inconsistent (caller bug)."""
    
    def __init__(self, message: str, field: str = None):
        super().__init__(message, "MALFORMED_INPUT")
        self.field = field


class CryptoError(ArloadError):
    """Key parsing, signing or verification failed."""
    
    def __init__(self, message: str):
        super().__init__(message, "CRYPTO_ERROR")


class ProtocolError(ArloadError):
    """A protocol invariant was violated."""
    
    def __init__(self, message: str, code: str = "PROTOCOL_ERROR"):
        super().__init__(message, code)


class EmptyTreeError(ProtocolError):
    """Merkle operation attempted on a tree with zero leaves."""
    
    def __init__(self, message: str = "Merkle tree has no leaves"):
        super().__init__(message, "EMPTY_TREE")


class AlreadySignedError(ProtocolError):
    """Transaction is already signed and can no longer change."""
    
    def __init__(self, message: str = "Transaction is already signed", tx_id: str = None):
        super().__init__(message, "ALREADY_SIGNED")
        self.tx_id = tx_id


class InvalidProofError(ProtocolError):
    """Inclusion proof does not resolve to the expected root."""
    
    def __init__(self, message: str = "Invalid proof", offset: int = None):
        super().__init__(message, "INVALID_PROOF")
        self.offset = offset
