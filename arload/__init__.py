"""
arload - prepare payloads for a content-addressed storage network.

Chunks a payload, commits to it with a Merkle data root, builds per-chunk
inclusion proofs and signs the transaction's deep hash.

Quick Start:
    from arload import Wallet, Tag, create_transaction, sign_transaction

    wallet = Wallet.from_keyfile("arweave-keyfile.json")
    tx = create_transaction(wallet, data, last_tx=anchor, reward=reward,
                            tags=[Tag.from_utf8_strs("Content-Type", "text/html")])
    sign_transaction(wallet, tx)
    body = tx.to_dict()
"""

import logging

from .config import ArloadConfig
from .exceptions import (
    ArloadError,
    MalformedInputError,
    CryptoError,
    ProtocolError,
    EmptyTreeError,
    AlreadySignedError,
    InvalidProofError,
)
from .core import (
    Wallet,
    Tag,
    Transaction,
    TransactionState,
    create_transaction,
    sign_transaction,
    prepare_transactions,
    content_type_tag,
    compute_root,
    deep_hash,
)

__version__ = "0.1.0"


def configure_logging(config: ArloadConfig | None = None) -> None:
    """Apply the configured log level (and optional log file)."""
    config = config or ArloadConfig()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        filename=config.log_file,
    )


__all__ = [
    # Core
    "Wallet",
    "Tag",
    "Transaction",
    "TransactionState",
    "create_transaction",
    "sign_transaction",
    "prepare_transactions",
    "content_type_tag",
    "compute_root",
    "deep_hash",
    "ArloadConfig",
    "configure_logging",
    # Exceptions
    "ArloadError",
    "MalformedInputError",
    "CryptoError",
    "ProtocolError",
    "EmptyTreeError",
    "AlreadySignedError",
    "InvalidProofError",
    # Version
    "__version__",
]
