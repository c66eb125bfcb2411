"""
Merkle Tree Implementation
Binary hash tree construction and inclusion proof generation.

Commitment Rules:
1. Leaf hashing: leaf = H(raw bytes), no prefix
2. Parent hashing: parent = H(left + right), positional order, never sorted
3. Padding rule: an odd trailing node at any level is paired with itself
4. Empty input: rejected with EmptyInputException
5. Single leaf: root = that leaf's digest, proof has no steps

Determinism Notes:
- Leaf ordering is upload order; this module never reorders leaves
- All levels are retained so proofs can be produced for any leaf
"""
from __future__ import annotations

from typing import Iterable, Sequence

from core.crypto.hashing import SHA256, HashAlgorithm, hash_concat, to_hex
from core.merkle.merkle_proofs import MerkleProof, ProofStep, Side
from core.schemas.errors import EmptyInputException, IndexOutOfRangeException


class MerkleTree:
    """
    An immutable binary Merkle tree.

    ``levels[0]`` holds the leaf digests and ``levels[-1]`` holds the root.

    Usage:
        tree = MerkleTree.build([b"hello", b"world"])
        proof = tree.proof(0)
        assert verify_proof(proof, SHA256.digest(b"hello"), tree.root)
    """

    def __init__(self, levels: list[list[bytes]], hasher: HashAlgorithm = SHA256) -> None:
        if not levels or not levels[0]:
            raise EmptyInputException()
        self._levels = levels
        self.hasher = hasher

    @classmethod
    def build(
        cls,
        blocks: Iterable[bytes],
        hasher: HashAlgorithm = SHA256,
    ) -> "MerkleTree":
        """
        Build a tree over raw data blocks.

        Args:
            blocks: Ordered data blocks (file contents)
            hasher: Hash algorithm for leaves and internal nodes

        Raises:
            EmptyInputException: If ``blocks`` is empty
        """
        leaves = [hasher.digest(block) for block in blocks]
        return cls.from_leaves(leaves, hasher)

    @classmethod
    def from_leaves(
        cls,
        leaves: Sequence[bytes],
        hasher: HashAlgorithm = SHA256,
    ) -> "MerkleTree":
        """
        Build a tree from precomputed leaf digests.

        Raises:
            EmptyInputException: If ``leaves`` is empty
        """
        if len(leaves) == 0:
            raise EmptyInputException()

        level = list(leaves)
        levels = [level]
        while len(level) > 1:
            next_level: list[bytes] = []
            for i in range(0, len(level), 2):
                left = level[i]
                right = level[i + 1] if i + 1 < len(level) else left
                next_level.append(hash_concat(hasher, left, right))
            levels.append(next_level)
            level = next_level

        return cls(levels, hasher)

    @property
    def root(self) -> bytes:
        """The single digest at the top of the tree."""
        return self._levels[-1][0]

    @property
    def root_hex(self) -> str:
        return to_hex(self.root)

    @property
    def leaves(self) -> list[bytes]:
        return list(self._levels[0])

    @property
    def levels(self) -> list[list[bytes]]:
        return [list(level) for level in self._levels]

    @property
    def leaf_count(self) -> int:
        return len(self._levels[0])

    @property
    def height(self) -> int:
        """Number of proof steps for any leaf (0 for a single leaf)."""
        return len(self._levels) - 1

    def proof(self, leaf_index: int) -> MerkleProof:
        """
        Generate the inclusion proof for the leaf at ``leaf_index``.

        At each level the sibling is ``index ^ 1``, clamped to the node
        itself when the level has an odd tail. The side is "left" when the
        sibling sits before the current node, "right" otherwise.

        Raises:
            IndexOutOfRangeException: If ``leaf_index`` is not a valid leaf
        """
        if leaf_index < 0 or leaf_index >= self.leaf_count:
            raise IndexOutOfRangeException(leaf_index, self.leaf_count)

        steps: list[ProofStep] = []
        index = leaf_index
        for level in self._levels[:-1]:
            sibling_index = index ^ 1
            if sibling_index >= len(level):
                sibling_index = index
            side = Side.LEFT if sibling_index < index else Side.RIGHT
            steps.append(ProofStep(sibling=level[sibling_index], side=side))
            index //= 2

        return MerkleProof(leaf_index=leaf_index, steps=tuple(steps))

    def __len__(self) -> int:
        return self.leaf_count

    def __repr__(self) -> str:
        return (
            f"MerkleTree(root={self.root_hex[:16]}..., leaves={self.leaf_count}, "
            f"hasher={self.hasher.name})"
        )


def compute_tree_height(num_leaves: int) -> int:
    """
    Number of levels above the leaves for a tree of ``num_leaves``.

    Equals ceil(log2(num_leaves)); 0 for zero or one leaf.
    """
    height = 0
    n = num_leaves
    while n > 1:
        n = (n + 1) // 2
        height += 1
    return height


def build_merkle_root(
    blocks: Iterable[bytes],
    hasher: HashAlgorithm = SHA256,
) -> bytes:
    """Convenience: root digest of ``blocks``."""
    return MerkleTree.build(blocks, hasher).root


__all__ = [
    "MerkleTree",
    "compute_tree_height",
    "build_merkle_root",
]
