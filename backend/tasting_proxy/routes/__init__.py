# Routes package init
"""
Tasting Notes Proxy — API Routes Package
=========================================

Route Inventory:
    - proxy.py:   POST /proxy/save     (upsert a tasting note)
                  POST /proxy/delete   (remove a tasting note)
                  GET  /proxy/test     (deployment probe)
    - health.py:  GET  /health         (service health check)

Routes handle HTTP concerns only; business rules live in services.
"""
