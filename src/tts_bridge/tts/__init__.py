"""
Synthesis pipeline components.

    - chunker.py: Sentence-preserving text chunking
    - backend.py: Backend base class and factory
    - backends/: Cloud and self-hosted backend implementations
    - stitcher.py: Concatenation of per-chunk audio
    - cache.py: Content-addressed disk cache
    - voices.py: Voices and the voice catalog
"""
