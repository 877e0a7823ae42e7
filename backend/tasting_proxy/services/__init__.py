# Services package init
"""
Tasting Notes Proxy — Services Layer
=====================================

What:  Business logic between the routes (HTTP) and Shopify (persistence).

Service Inventory:
    - ShopifyAdminClient: Admin GraphQL calls (customer email, metafield read/write)
    - DocumentStore (abstract): get/put a customer's tasting document
    - MetafieldDocumentStore: DocumentStore over a Shopify customer metafield
    - TastingService: save/delete rules (verify, merge, filter)

All of them are built once by create_app() and kept on app.state.
"""
