"""Realtime event shapes.

``protocol`` holds the validated client -> server events; ``chat`` and
``notifications`` build server -> client payloads and publish them. Nothing here
defines a Socket.IO server or connection handlers.
"""
