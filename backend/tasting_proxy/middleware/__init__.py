# Middleware package init
"""
Tasting Notes Proxy — Middleware Package
=========================================

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [Origin Guard] → Route Handler

    1. Request ID first: every later log line and error body can carry it
    2. Logging: records the final status, including origin rejections
    3. Origin Guard last: answers preflights and refuses foreign origins
       before the route runs, and adds CORS headers to route responses,
       error responses included
"""
