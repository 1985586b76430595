"""
MELONOTES Backend — Middleware Package
========================================

Middleware Chain (order matters):
    Request → [Request ID] → [Logging] → [Login Throttle] → [GZip] → [CORS] → Route

    1. Request ID first: every later layer, throttled responses included,
       can read the correlation id
    2. Logging: one access line per request, throttled logins included
    3. Login throttle: reject repeated login attempts before any work
"""
