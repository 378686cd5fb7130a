"""
sos — Hold-to-trigger emergency alert system.

Sub-modules:
    hold_gesture  — press/hold/release → confirmed intent
    location      — single bounded geolocation fix
    composer      — emergency message + map link
    channels/     — call and message channel backends
    dispatcher    — staggered per-contact fan-out
    event_log     — bounded SOS history
    contacts      — per-owner trusted contact book
    profiles      — owner display profile
    controller    — trigger state machine tying it all together
    sessions      — one controller per signed-in owner
"""
