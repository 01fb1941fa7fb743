"""Realtime fanout for live Q&A (change stream, Socket.IO, subscriptions).

Moderator consoles, audience views and broadcast screens all share one
Socket.IO server; each watches a session through its own room.
"""
