# Middleware package init
"""
Fabtrack Backend — Middleware Package
======================================

Cross-cutting concerns applied to every request.

Middleware Chain (request direction):
    [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    Request ID runs first so the access log line carries the id; GZip
    shrinks history pages, which embed one QR image per form.
"""
