"""
Merkle Inclusion Proofs
Proof structure, serialization and verification.

A proof is the leaf index plus the ordered list of steps from the leaf to
the root. Each step carries the sibling digest and an explicit side tag:

- side "left":  current = H(sibling + current)
- side "right": current = H(current + sibling)

Side information is stored explicitly rather than inferred from the leaf
index, so a proof stays verifiable on its own terms even when it travels
separately from the tree that produced it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from core.crypto.hashing import SHA256, HashAlgorithm, from_hex, hash_concat, to_hex
from core.schemas.errors import InvalidDigestException, InvalidProofException


class Side(str, Enum):
    """Position of the sibling relative to the current node."""

    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class ProofStep:
    """One level of an inclusion proof."""

    sibling: bytes
    side: Side

    def to_dict(self) -> dict[str, str]:
        return {"sibling": to_hex(self.sibling), "side": self.side.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProofStep":
        try:
            sibling = from_hex(data["sibling"])
            side = Side(data["side"])
        except (KeyError, TypeError, ValueError, InvalidDigestException) as e:
            raise InvalidProofException(
                f"Malformed proof step: {e}", details={"step": data}
            ) from e
        return cls(sibling=sibling, side=side)


@dataclass(frozen=True)
class MerkleProof:
    """
    A Merkle inclusion proof for a single leaf.

    Attributes:
        leaf_index: The 0-based position of the leaf in the batch
        steps: Sibling digests with side tags, from leaf level to root
    """

    leaf_index: int
    steps: tuple[ProofStep, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.leaf_index < 0:
            raise InvalidProofException(
                f"Leaf index must be non-negative, got {self.leaf_index}"
            )
        # Accept lists from callers, store immutably
        if not isinstance(self.steps, tuple):
            object.__setattr__(self, "steps", tuple(self.steps))

    def __len__(self) -> int:
        return len(self.steps)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-friendly dict with hex siblings."""
        return {
            "leaf_index": self.leaf_index,
            "steps": [step.to_dict() for step in self.steps],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MerkleProof":
        """
        Parse a proof produced by ``to_dict``.

        Raises:
            InvalidProofException: If the payload is malformed
        """
        if not isinstance(data, dict):
            raise InvalidProofException("Proof payload must be an object")
        leaf_index = data.get("leaf_index")
        raw_steps = data.get("steps")
        if not isinstance(leaf_index, int) or isinstance(leaf_index, bool):
            raise InvalidProofException("Proof leaf_index must be an integer")
        if not isinstance(raw_steps, list):
            raise InvalidProofException("Proof steps must be a list")
        steps = tuple(ProofStep.from_dict(step) for step in raw_steps)
        return cls(leaf_index=leaf_index, steps=steps)


def compute_root_from_proof(
    proof: MerkleProof,
    leaf_digest: bytes,
    hasher: HashAlgorithm = SHA256,
) -> bytes:
    """Replay the combine step along ``proof`` starting at ``leaf_digest``."""
    current = leaf_digest
    for step in proof.steps:
        if step.side is Side.LEFT:
            current = hash_concat(hasher, step.sibling, current)
        else:
            current = hash_concat(hasher, current, step.sibling)
    return current


def verify_proof(
    proof: MerkleProof,
    leaf_digest: bytes,
    root: bytes,
    hasher: HashAlgorithm = SHA256,
) -> bool:
    """
    Verify that ``leaf_digest`` is included in the tree rooted at ``root``.

    Pure function: no I/O, no shared state. Equality is byte-exact.

    Args:
        proof: Inclusion proof for the leaf
        leaf_digest: Digest of the leaf's raw bytes
        root: The trusted root
        hasher: Hash algorithm the tree was built with

    Returns:
        True if the replayed root equals ``root``, False otherwise
    """
    return compute_root_from_proof(proof, leaf_digest, hasher) == root


class MerkleVerifier:
    """
    Convenience class for verifying content against a trusted root.

    Example:
        >>> tree = MerkleTree.build([b"hello", b"world"])
        >>> MerkleVerifier.verify_content(tree.proof(0), b"hello", tree.root)
        True
    """

    @staticmethod
    def verify_content(
        proof: MerkleProof,
        content: bytes,
        root: bytes,
        hasher: HashAlgorithm = SHA256,
    ) -> bool:
        """Hash ``content`` as a leaf and verify it against ``root``."""
        return verify_proof(proof, hasher.digest(content), root, hasher)


__all__ = [
    "Side",
    "ProofStep",
    "MerkleProof",
    "compute_root_from_proof",
    "verify_proof",
    "MerkleVerifier",
]
