"""
Utility modules for tts-bridge.

    - audio.py: WAV decoding/encoding and audio format description
    - timeit.py: Performance measurement
"""
