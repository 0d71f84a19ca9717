# Middleware package init
"""
Inkwell Backend — Middleware Package
=====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (execution order):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    1. Rate Limit first: reject over-budget callers before any work
    2. Request ID: sets the correlation and actor ContextVars
    3. Logging: reads both ContextVars when writing the access line
"""
