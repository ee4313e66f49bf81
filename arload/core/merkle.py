"""
Merkle tree over payload chunks.

This module provides:
- Leaf and branch construction with byte-range aware ids
- MerkleTree: arena of nodes, children referenced by index
- Inclusion proof generation (one proof per chunk, payload order)
- Proof replay against a known data root

Ids are hash-of-hashes at the 32-byte width:
    leaf   = H(H(data_hash) || H(note(max_byte_range)))
    branch = H(H(left.id) || H(right.id) || H(note(left.max_byte_range)))
An odd node at the end of a level is carried up unchanged.
"""

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..exceptions import EmptyTreeError, InvalidProofError
from .chunker import Chunk, DataChunker
from .crypto import SHA256, digest, digest_concat
from .encoding import NOTE_SIZE, note, note_to_int

logger = logging.getLogger(__name__)

HASH_SIZE = SHA256
BRANCH_SEGMENT = 2 * HASH_SIZE + NOTE_SIZE
LEAF_SEGMENT = HASH_SIZE + NOTE_SIZE


class Node(BaseModel):
    """A tree node; leaves carry a data hash, branches carry child indexes."""

    id: bytes
    min_byte_range: int
    max_byte_range: int
    data_hash: Optional[bytes] = None
    left: Optional[int] = None
    right: Optional[int] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_leaf(self) -> bool:
        return self.data_hash is not None


class Proof(BaseModel):
    """Inclusion proof for one chunk."""

    offset: int
    proof: bytes

    model_config = ConfigDict(frozen=True)


class PathResult(BaseModel):
    """What a successfully replayed proof establishes about its chunk."""

    data_hash: bytes
    left_bound: int
    right_bound: int

    @property
    def chunk_size(self) -> int:
        return self.right_bound - self.left_bound


def hash_leaf(data_hash: bytes, max_byte_range: int) -> bytes:
    return digest_concat([data_hash, note(max_byte_range)], SHA256)


def hash_branch(left_id: bytes, right_id: bytes, boundary: int) -> bytes:
    return digest_concat([left_id, right_id, note(boundary)], SHA256)


def generate_leaves(chunks: list[Chunk]) -> list[Node]:
    """Build one leaf node per chunk, in payload order."""
    return [
        Node(
            id=hash_leaf(chunk.data_hash, chunk.max_byte_range),
            data_hash=chunk.data_hash,
            min_byte_range=chunk.min_byte_range,
            max_byte_range=chunk.max_byte_range,
        )
        for chunk in chunks
    ]


class MerkleTree:
    """
    Binary hash tree stored as an arena.

    Leaves occupy the first `leaf_count` slots in payload order; branches
    follow level by level, so the root is always the last node.
    """

    def __init__(self, chunks: list[Chunk]) -> None:
        if not chunks:
            raise EmptyTreeError()

        self.chunks = chunks
        self.nodes: list[Node] = generate_leaves(chunks)
        self.leaf_count = len(self.nodes)

        level = list(range(self.leaf_count))
        while len(level) > 1:
            next_level = []
            for i in range(0, len(level), 2):
                if i + 1 < len(level):
                    next_level.append(self._add_branch(level[i], level[i + 1]))
                else:
                    next_level.append(level[i])
            level = next_level

        self.root_index = level[0]
        logger.debug(
            f"Built tree with {self.leaf_count} leaves and {len(self.nodes)} nodes"
        )

    def _add_branch(self, left_index: int, right_index: int) -> int:
        left = self.nodes[left_index]
        right = self.nodes[right_index]
        self.nodes.append(Node(
            id=hash_branch(left.id, right.id, left.max_byte_range),
            min_byte_range=left.min_byte_range,
            max_byte_range=right.max_byte_range,
            left=left_index,
            right=right_index,
        ))
        return len(self.nodes) - 1

    @property
    def root(self) -> Node:
        return self.nodes[self.root_index]

    @property
    def root_id(self) -> bytes:
        return self.root.id

    @property
    def leaves(self) -> list[Node]:
        return self.nodes[:self.leaf_count]

    def __len__(self) -> int:
        return len(self.nodes)

    def __repr__(self) -> str:
        return f"MerkleTree(leaves={self.leaf_count}, size={self.root.max_byte_range})"


def build_tree(chunks: list[Chunk]) -> MerkleTree:
    """Build a Merkle tree from ordered chunks."""
    return MerkleTree(chunks)


def compute_root(data: bytes, chunker: Optional[DataChunker] = None) -> bytes:
    """Chunk a payload and return its data root."""
    chunker = chunker or DataChunker()
    return build_tree(chunker.chunk(data)).root_id


def resolve_proofs(
    tree: MerkleTree,
    node_index: Optional[int] = None,
    prefix: bytes = b""
) -> list[Proof]:
    """
    Generate inclusion proofs by walking the tree depth first.

    Each branch on the way down contributes `left.id || right.id || note`,
    and the leaf appends its data hash and end offset.

    Args:
        tree: Tree to walk
        node_index: Subtree to start from (root when None)
        prefix: Proof bytes accumulated above `node_index`

    Returns:
        One Proof per leaf under the start node, in payload order
    """
    if tree is None or not tree.nodes:
        raise EmptyTreeError()

    index = tree.root_index if node_index is None else node_index
    node = tree.nodes[index]

    if node.is_leaf:
        return [Proof(
            offset=node.max_byte_range,
            proof=prefix + node.data_hash + note(node.max_byte_range),
        )]

    left = tree.nodes[node.left]
    right = tree.nodes[node.right]
    partial = prefix + left.id + right.id + note(left.max_byte_range)
    return (
        resolve_proofs(tree, node.left, partial)
        + resolve_proofs(tree, node.right, partial)
    )


def validate_path(
    root_id: bytes,
    offset: int,
    left_bound: int,
    right_bound: int,
    path: bytes
) -> PathResult:
    """
    Replay a proof from the root down to a leaf.

    `offset` is the end offset of the chunk being proven: at each branch the
    walk goes left while `offset <= boundary`.

    Args:
        root_id: Expected data root
        offset: Chunk end offset (Proof.offset)
        left_bound: Start of the payload (normally 0)
        right_bound: Payload length
        path: Proof bytes

    Returns:
        PathResult describing the proven chunk

    Raises:
        InvalidProofError: If any segment fails to hash to its parent id
    """
    if not left_bound <= offset <= right_bound:
        raise InvalidProofError(
            f"Offset {offset} outside [{left_bound}, {right_bound}]", offset=offset
        )

    expected = root_id
    cursor = 0
    while len(path) - cursor > LEAF_SEGMENT:
        if len(path) - cursor < BRANCH_SEGMENT:
            raise InvalidProofError("Truncated branch segment", offset=offset)
        left_id = path[cursor:cursor + HASH_SIZE]
        right_id = path[cursor + HASH_SIZE:cursor + 2 * HASH_SIZE]
        boundary_note = path[cursor + 2 * HASH_SIZE:cursor + BRANCH_SEGMENT]
        boundary = note_to_int(boundary_note)

        if digest_concat([left_id, right_id, boundary_note], SHA256) != expected:
            logger.warning(f"Branch hash mismatch at proof byte {cursor}")
            raise InvalidProofError("Branch does not hash to parent id", offset=offset)

        if offset <= boundary:
            expected = left_id
            right_bound = min(right_bound, boundary)
        else:
            expected = right_id
            left_bound = max(left_bound, boundary)
        cursor += BRANCH_SEGMENT

    if len(path) - cursor != LEAF_SEGMENT:
        raise InvalidProofError("Malformed leaf segment", offset=offset)

    data_hash = path[cursor:cursor + HASH_SIZE]
    end_note = path[cursor + HASH_SIZE:]
    if digest_concat([data_hash, end_note], SHA256) != expected:
        logger.warning("Leaf hash mismatch")
        raise InvalidProofError("Leaf does not hash to parent id", offset=offset)
    if note_to_int(end_note) != right_bound:
        raise InvalidProofError("Leaf end offset inconsistent with its position", offset=offset)

    return PathResult(data_hash=data_hash, left_bound=left_bound, right_bound=right_bound)


def verify_chunk(root_id: bytes, data_size: int, proof: Proof, chunk_data: bytes) -> bool:
    """
    Check that chunk bytes are committed to by a data root.

    Returns:
        True if the proof is valid and matches the chunk bytes
    """
    try:
        result = validate_path(root_id, proof.offset, 0, data_size, proof.proof)
    except InvalidProofError:
        return False
    return (
        result.chunk_size == len(chunk_data)
        and digest(chunk_data, SHA256) == result.data_hash
    )
