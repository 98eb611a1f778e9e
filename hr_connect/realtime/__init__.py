"""Realtime messaging core (Socket.IO).

Session registry, room routing, the message delivery pipeline and the
publishers used by other apps all share the one socket server defined in
``hr_connect.realtime.socketio``.
"""
