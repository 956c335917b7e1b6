"""Microkey Primo tape image tools: .pp to .ptp, .ptp to .pri and C source, BASIC line decoding and turbo WAV generation."""

__version__ = "0.1.0"