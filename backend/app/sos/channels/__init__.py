"""
channels — Device-level channel backends.

Each channel module exposes:
    build_url(...)              → the URI to hand to the platform
    invoke(launcher, url)       → issue it; raises ChannelInvocationFailure

Channels only *issue* actions. Nothing here waits for or confirms
delivery, and nothing retries. Scheduling lives in dispatcher.
"""
