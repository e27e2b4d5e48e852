# Routes package init
"""
Fabtrack Backend — API Routes Package
======================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - forms.py:   /api/v1/...           (create, list, get, update, delete forms)
    - health.py:  GET /health           (service health check)

Design Principle:
    Routes stay THIN: they read path/query/body, call FormService and return
    the response model. Status codes for failures come from the exception
    handlers registered in main.py.
"""
