"""
Merkle Tree and Inclusion Proofs

Binary Merkle tree over ordered data blocks, with explicit-side proofs.

Commitment Rules:
1. Leaf hashing: H(raw bytes)
2. Parent hashing: H(left + right)
3. Padding: pair the last node with itself if odd at any level
4. Empty input: rejected
5. Single leaf: root = leaf

Usage:
    from core.merkle import MerkleTree, verify_proof
    from core.crypto import SHA256

    tree = MerkleTree.build([b"hello", b"world"])
    proof = tree.proof(0)
    assert verify_proof(proof, SHA256.digest(b"hello"), tree.root)
"""
from .merkle_proofs import (
    Side,
    ProofStep,
    MerkleProof,
    compute_root_from_proof,
    verify_proof,
    MerkleVerifier,
)

from .merkle_tree import (
    MerkleTree,
    compute_tree_height,
    build_merkle_root,
)


__all__ = [
    # Core types
    "MerkleTree",
    "MerkleProof",
    "ProofStep",
    "Side",
    # Functions
    "verify_proof",
    "compute_root_from_proof",
    "compute_tree_height",
    "build_merkle_root",
    # Convenience classes
    "MerkleVerifier",
]
