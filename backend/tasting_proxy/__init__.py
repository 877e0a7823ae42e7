"""
Tasting Notes Proxy — Application Package
==========================================

What: Storefront proxy that saves and removes a customer's wine tasting notes.
Why:  The storefront cannot hold an Admin API token, so the browser posts here
      and this service talks to Shopify on its behalf.

Architecture Note:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │      Services (Business Logic)      │  ← verify, merge, filter
    ├─────────────────────────────────────┤
    │   Models & Schemas (Data)           │  ← tasting document + API contract
    ├─────────────────────────────────────┤
    │   Document Store (Persistence)      │  ← customer metafield over GraphQL
    └─────────────────────────────────────┘

    Nothing is stored locally. The customer metafield `tasting.events` holds the
    whole document and is rewritten on every save or delete.
"""

__version__ = "1.0.0"
