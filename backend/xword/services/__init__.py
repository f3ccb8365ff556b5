"""Game session services: the ordering authority, broadcast and statistics.

These are the only modules that write the event log or talk to connected
clients. HTTP routes and socket handlers go through them so transport
concerns stay separate from event ordering.
"""
