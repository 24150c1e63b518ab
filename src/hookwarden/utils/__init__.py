"""Utility modules for hookwarden."""

from hookwarden.utils.ring_buffer import RingBuffer

__all__ = ["RingBuffer"]
