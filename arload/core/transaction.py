"""
Transaction assembly and signing.

This module provides:
- Tag: a (name, value) byte pair carried in signed order
- Transaction: format 2 transaction fields plus chunks and proofs
- create_transaction: chunk a payload and fill every signed field
- sign_transaction: deep hash, RSA-PSS sign and derive the id
- prepare_transactions: the same for many payloads on a thread pool
- content_type_tag: a Content-Type tag sniffed from the payload bytes

State moves UNASSEMBLED -> FIELDS_SET -> HASHED -> SIGNED; a signed
transaction can no longer be changed or signed again.
"""

import concurrent.futures
import logging
from enum import Enum, auto
from typing import Any, Optional

import filetype
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from ..config import ArloadConfig
from ..exceptions import AlreadySignedError, MalformedInputError, ProtocolError
from .chunker import Chunk, DataChunker
from .crypto import SHA256, Wallet, digest, verify_signature
from .deep_hash import deep_hash
from .encoding import b64url_decode, b64url_encode
from .merkle import Proof, build_tree, resolve_proofs

logger = logging.getLogger(__name__)

TX_FORMAT = 2

CONTENT_TYPE = "Content-Type"
# Assumed for payloads whose leading bytes match no known file type
DEFAULT_CONTENT_TYPE = "application/json"


def _decode_bytes(v: Any) -> Any:
    if isinstance(v, str):
        return b64url_decode(v)
    return v


class TransactionState(Enum):
    """Lifecycle of a transaction."""
    UNASSEMBLED = auto()
    FIELDS_SET = auto()
    HASHED = auto()
    SIGNED = auto()


class Tag(BaseModel):
    """A transaction tag; order within the tag list is signed."""

    name: bytes
    value: bytes

    model_config = ConfigDict(frozen=True)

    @field_serializer("name", "value")
    def serialize_bytes(self, v: bytes, _info):
        return b64url_encode(v)

    @field_validator("name", "value", mode="before")
    @classmethod
    def validate_bytes(cls, v: Any) -> bytes:
        return _decode_bytes(v)

    @classmethod
    def from_utf8_strs(cls, name: str, value: str) -> "Tag":
        """Create a tag from plain (unencoded) strings."""
        return cls(name=name.encode("utf-8"), value=value.encode("utf-8"))

    def to_utf8_strs(self) -> tuple[str, str]:
        return self.name.decode("utf-8"), self.value.decode("utf-8")


def detect_content_type(data: bytes, default: str = DEFAULT_CONTENT_TYPE) -> str:
    """Sniff a payload's MIME type from its leading bytes."""
    if not data:
        return default
    return filetype.guess_mime(bytes(data)) or default


def content_type_tag(data: bytes, default: str = DEFAULT_CONTENT_TYPE) -> Tag:
    """Build a Content-Type tag for a payload."""
    return Tag.from_utf8_strs(CONTENT_TYPE, detect_content_type(data, default))


def _has_content_type(tags: list[Tag]) -> bool:
    return any(tag.name.lower() == CONTENT_TYPE.lower().encode() for tag in tags)


class Transaction(BaseModel):
    """A format 2 transaction."""

    format: int = TX_FORMAT
    id: bytes = b""
    last_tx: bytes = b""
    owner: bytes = b""
    tags: tuple[Tag, ...] = ()
    target: bytes = b""
    quantity: int = 0
    data_root: bytes = b""
    data: bytes = b""
    data_size: int = 0
    reward: int = 0
    signature: bytes = b""

    chunks: list[Chunk] = Field(default_factory=list, exclude=True)
    proofs: list[Proof] = Field(default_factory=list, exclude=True)
    state: TransactionState = Field(default=TransactionState.UNASSEMBLED, exclude=True)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_serializer("id", "last_tx", "owner", "target", "data_root", "data", "signature")
    def serialize_bytes(self, v: bytes, _info):
        """Serialize bytes to base64url without padding."""
        return b64url_encode(v)

    @field_serializer("quantity", "data_size", "reward")
    def serialize_int(self, v: int, _info):
        """Integers travel as decimal strings."""
        return str(v)

    @field_validator("id", "last_tx", "owner", "target", "data_root", "data", "signature", mode="before")
    @classmethod
    def validate_bytes(cls, v: Any) -> bytes:
        """Decode base64url string to bytes if needed."""
        return _decode_bytes(v)

    def __setattr__(self, name: str, value: Any) -> None:
        if self.state is TransactionState.SIGNED:
            raise AlreadySignedError(tx_id=b64url_encode(self.id))
        super().__setattr__(name, value)

    @property
    def is_signed(self) -> bool:
        return self.state is TransactionState.SIGNED

    def set_fields(
        self,
        data: bytes,
        last_tx: bytes,
        reward: int,
        owner: bytes = b"",
        tags: Optional[list[Tag]] = None,
        target: bytes = b"",
        quantity: int = 0,
        data_size: Optional[int] = None,
        chunker: Optional[DataChunker] = None
    ) -> "Transaction":
        """
        Chunk the payload, build proofs and fill all signed fields.

        Raises:
            MalformedInputError: If `data_size` disagrees with the payload
            AlreadySignedError: If the transaction is already signed
        """
        data = bytes(data)
        if data_size is not None and data_size != len(data):
            raise MalformedInputError(
                f"Declared data_size {data_size} does not match payload length {len(data)}",
                field="data_size",
            )
        if reward < 0 or quantity < 0:
            raise MalformedInputError("reward and quantity must be non-negative")

        chunker = chunker or DataChunker()
        chunks = chunker.chunk(data)
        tree = build_tree(chunks)

        self.owner = owner
        self.last_tx = last_tx
        self.reward = reward
        self.tags = tuple(tags or ())
        self.target = target
        self.quantity = quantity
        self.data = data
        self.data_size = len(data)
        self.data_root = tree.root_id
        self.chunks = chunks
        self.proofs = resolve_proofs(tree)
        self.state = TransactionState.FIELDS_SET
        return self

    def add_tag(self, tag: Tag) -> None:
        """Append a tag; invalidates any previously computed hash."""
        if self.state is TransactionState.UNASSEMBLED:
            raise ProtocolError("Cannot add tags before fields are set")
        self.tags = (*self.tags, tag)
        self.state = TransactionState.FIELDS_SET

    def signature_fields(self) -> list:
        """The nested byte structure committed to by the signature."""
        return [
            str(self.format).encode(),
            self.owner,
            self.target,
            str(self.quantity).encode(),
            str(self.reward).encode(),
            self.last_tx,
            [[tag.name, tag.value] for tag in self.tags],
            str(self.data_size).encode(),
            self.data_root,
        ]

    def signature_data(self) -> bytes:
        """
        Deep hash of the signed fields (48 bytes).

        Returns:
            The message that gets signed
        """
        if self.state is TransactionState.UNASSEMBLED:
            raise ProtocolError("Cannot hash a transaction before its fields are set")
        message = deep_hash(self.signature_fields())
        if self.state is TransactionState.FIELDS_SET:
            self.state = TransactionState.HASHED
        return message

    def verify(self) -> bool:
        """Check the id and signature against the signed fields."""
        if not self.is_signed:
            raise ProtocolError("Transaction is not signed", code="UNSIGNED_TRANSACTION")
        if digest(self.signature, SHA256) != self.id:
            return False
        return verify_signature(deep_hash(self.signature_fields()), self.signature, self.owner)

    def get_chunk(self, index: int) -> dict[str, str]:
        """
        Upload body for a single chunk.

        The chunk endpoint addresses a chunk by its last byte, one less than
        the proof's end offset.
        """
        if not self.chunks:
            raise ProtocolError("Transaction has no chunks")
        if not 0 <= index < len(self.chunks):
            raise MalformedInputError(
                f"Chunk index {index} out of range for {len(self.chunks)} chunks", field="index"
            )
        chunk = self.chunks[index]
        proof = self.proofs[index]
        return {
            "data_root": b64url_encode(self.data_root),
            "data_size": str(self.data_size),
            "data_path": b64url_encode(proof.proof),
            "offset": str(max(proof.offset - 1, 0)),
            "chunk": b64url_encode(chunk.data),
        }

    def to_dict(self) -> dict[str, Any]:
        """JSON form with base64url binaries and stringified integers."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        config: Optional[ArloadConfig] = None
    ) -> "Transaction":
        """
        Rebuild a transaction from its JSON form.

        When the payload is present its chunks and proofs are regenerated
        with the chunk sizes from `config` and the data root is checked
        against them.
        """
        tx = cls.model_validate(data)
        if tx.data:
            if tx.data_size != len(tx.data):
                raise MalformedInputError(
                    f"data_size {tx.data_size} does not match payload length {len(tx.data)}",
                    field="data_size",
                )
            config = config or ArloadConfig()
            chunks = DataChunker(config.max_chunk_size, config.min_chunk_size).chunk(tx.data)
            tree = build_tree(chunks)
            if tree.root_id != tx.data_root:
                raise MalformedInputError("data_root does not match payload", field="data_root")
            tx.chunks = chunks
            tx.proofs = resolve_proofs(tree)
        tx.state = TransactionState.SIGNED if tx.signature else TransactionState.FIELDS_SET
        return tx

    def __repr__(self) -> str:
        tx_id = b64url_encode(self.id) if self.id else "-"
        return f"Transaction(id={tx_id}, size={self.data_size}, state={self.state.name})"


def create_transaction(
    wallet: Wallet,
    data: bytes,
    last_tx: bytes,
    reward: int,
    tags: Optional[list[Tag]] = None,
    target: bytes = b"",
    quantity: int = 0,
    data_size: Optional[int] = None,
    config: Optional[ArloadConfig] = None,
    auto_content_type: bool = False
) -> Transaction:
    """
    Assemble an unsigned transaction for a payload.

    Args:
        wallet: Wallet whose modulus becomes the owner
        data: Payload bytes
        last_tx: Anchor supplied by the network layer
        reward: Fee supplied by the network layer
        tags: Ordered tags
        target: Recipient address bytes (empty for data transactions)
        quantity: Amount transferred to target
        data_size: Declared payload length, checked when given
        config: Chunk sizes and format (network defaults when None)
        auto_content_type: Prepend a sniffed Content-Type tag unless `tags`
            already carries one

    Returns:
        Transaction in FIELDS_SET state
    """
    config = config or ArloadConfig()
    tags = list(tags or [])
    if auto_content_type and not _has_content_type(tags):
        tags.insert(0, content_type_tag(data))

    tx = Transaction(format=config.format)
    tx.set_fields(
        data,
        last_tx=last_tx,
        reward=reward,
        owner=wallet.owner,
        tags=tags,
        target=target,
        quantity=quantity,
        data_size=data_size,
        chunker=DataChunker(config.max_chunk_size, config.min_chunk_size),
    )
    logger.debug(f"Assembled transaction for {tx.data_size} bytes in {len(tx.chunks)} chunks")
    return tx


def sign_transaction(wallet: Wallet, tx: Transaction) -> Transaction:
    """
    Sign a transaction and attach its signature and id.

    The owner is always replaced by the signing wallet's modulus.

    Raises:
        AlreadySignedError: If the transaction is already signed
        ProtocolError: If the transaction fields are not set
    """
    if tx.is_signed:
        raise AlreadySignedError(tx_id=b64url_encode(tx.id))
    if tx.state is TransactionState.UNASSEMBLED:
        raise ProtocolError("Cannot sign a transaction before its fields are set")

    if tx.owner != wallet.owner:
        tx.owner = wallet.owner
        tx.state = TransactionState.FIELDS_SET

    message = tx.signature_data()
    signature = wallet.sign(message)

    tx.signature = signature
    tx.id = digest(signature, SHA256)
    tx.state = TransactionState.SIGNED
    logger.info(f"Signed transaction {b64url_encode(tx.id)} ({tx.data_size} bytes)")
    return tx


def prepare_transactions(
    wallet: Wallet,
    payloads: list[bytes],
    last_tx: bytes,
    reward: int,
    tags: Optional[list[list[Tag]]] = None,
    config: Optional[ArloadConfig] = None,
    max_workers: Optional[int] = None,
    auto_content_type: bool = False
) -> list[Transaction]:
    """
    Assemble and sign many independent payloads in parallel.

    Args:
        wallet: Shared signing wallet
        payloads: Payloads to prepare
        last_tx: Anchor used for every transaction
        reward: Fee used for every transaction
        tags: Optional per-payload tag lists (same length as payloads)
        config: Chunking configuration
        max_workers: Thread pool size (config.max_workers when None)
        auto_content_type: Tag each payload with its sniffed Content-Type

    Returns:
        Signed transactions in payload order
    """
    if not payloads:
        return []
    if tags is not None and len(tags) != len(payloads):
        raise MalformedInputError(
            f"Got {len(tags)} tag lists for {len(payloads)} payloads", field="tags"
        )

    config = config or ArloadConfig()
    workers = max_workers or config.max_workers
    tag_lists = tags or [None] * len(payloads)

    def prepare(data: bytes, tx_tags: Optional[list[Tag]]) -> Transaction:
        tx = create_transaction(wallet, data, last_tx, reward, tags=tx_tags, config=config,
                                auto_content_type=auto_content_type)
        return sign_transaction(wallet, tx)

    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(prepare, data, tx_tags)
            for data, tx_tags in zip(payloads, tag_lists)
        ]
        return [f.result() for f in futures]
