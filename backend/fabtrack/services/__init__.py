# Services package init
"""
Fabtrack Backend — Services Layer
==================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).

Service Inventory:
    - CodeService: Builds the form's detail URL and renders it as a QR code
    - FormService: Create / list / get / update / delete with the form rules

Both are stateless; each call receives the request's database session.
"""
