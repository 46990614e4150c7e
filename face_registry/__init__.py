"""
Face Registry

A face enrollment and lookup service using:
- DeepFace for face detection and embeddings
- Exact Euclidean nearest-neighbour matching with NumPy
- SQLAlchemy (async) for the identity record store
- FastAPI for the RESTful API
"""

__version__ = "1.0.0"
