"""
Background liveness helper and the foreground side of its message channel.

The helper runs on its own thread and never touches the stores: it relays
notification interactions and periodic "checkAlarms" requests to whatever
foreground endpoints are attached.
"""
