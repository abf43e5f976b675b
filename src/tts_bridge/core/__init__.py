"""
Core infrastructure for tts-bridge.

    - config.py: Configuration loading and validation
    - errors.py: Error taxonomy shared by every component
    - logging/: Structured logging with numeric levels
    - metrics.py: Prometheus metrics collection
"""
