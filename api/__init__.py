"""
MerkleVault HTTP API (FastAPI)

HTTP binding of the server side of the protocol:
- POST /batches - Store an upload batch
- GET /batches - List stored batches
- GET /batches/{root}/files/{filename} - Download a file with its proof
- GET /health - Health check

Usage:
    uvicorn api.app:app --port 2345
"""

__version__ = "0.1.0"
