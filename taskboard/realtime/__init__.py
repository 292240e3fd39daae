"""Realtime gateway package.

Holds the room registry, the event catalogue, the Socket.IO gateway and the
publishers REST handlers call after a commit.
"""
