# Routes package init
"""
Inkwell Backend — API Routes Package
=====================================

Route Inventory:
    - notes.py:   /api/notes...       (CRUD, trash lifecycle, star, folder, shares)
    - folders.py: /api/folders...     (personal and team folders)
    - teams.py:   /api/teams...       (teams, members, activity feed)
    - tags.py:    GET /api/tags       (tag usage counts)
    - health.py:  GET /health         (service health check)

Design Principle:
    Routes are THIN: resolve the Actor, call a service, shape the response.
    Permission and state rules live in the services.
"""
