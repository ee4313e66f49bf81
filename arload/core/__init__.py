"""
Core engine for preparing content-addressed transactions.

This package provides:
- Hashing and RSA-PSS signing primitives (crypto)
- Payload chunking with tail rebalancing (chunker)
- Merkle tree, data root and inclusion proofs (merkle)
- Deep hash over nested byte lists (deep_hash)
- Transaction assembly and signing (transaction)
"""

from .crypto import (
    SHA256,
    SHA384,
    Wallet,
    digest,
    digest_concat,
    verify_signature,
    batch_verify_signatures,
)

from .chunker import (
    Chunk,
    DataChunker,
    chunk_data,
    MAX_CHUNK_SIZE,
    MIN_CHUNK_SIZE,
)

from .merkle import (
    Node,
    Proof,
    PathResult,
    MerkleTree,
    build_tree,
    compute_root,
    generate_leaves,
    resolve_proofs,
    validate_path,
    verify_chunk,
)

from .deep_hash import DeepHashItem, deep_hash

from .transaction import (
    Tag,
    Transaction,
    TransactionState,
    create_transaction,
    sign_transaction,
    prepare_transactions,
    content_type_tag,
    detect_content_type,
)

from .encoding import b64url_encode, b64url_decode, note

__all__ = [
    # Crypto
    "SHA256",
    "SHA384",
    "Wallet",
    "digest",
    "digest_concat",
    "verify_signature",
    "batch_verify_signatures",
    # Chunking
    "Chunk",
    "DataChunker",
    "chunk_data",
    "MAX_CHUNK_SIZE",
    "MIN_CHUNK_SIZE",
    # Merkle
    "Node",
    "Proof",
    "PathResult",
    "MerkleTree",
    "build_tree",
    "compute_root",
    "generate_leaves",
    "resolve_proofs",
    "validate_path",
    "verify_chunk",
    # Deep hash
    "DeepHashItem",
    "deep_hash",
    # Transactions
    "Tag",
    "Transaction",
    "TransactionState",
    "create_transaction",
    "sign_transaction",
    "prepare_transactions",
    "content_type_tag",
    "detect_content_type",
    # Encoding
    "b64url_encode",
    "b64url_decode",
    "note",
]
