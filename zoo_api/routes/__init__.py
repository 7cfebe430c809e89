"""
Zoo Registry API: API Routes Package
=====================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - auth.py:     /api/users            (register, list, delete)
                   /api/auth/*           (login, me, change/reset password)
    - zoos.py:     /api/zoos             (zoo CRUD, expanded reads)
    - animals.py:  /api/animals          (animal CRUD, by-zoo listing)
    - health.py:   GET /health           (service health check)

Design Principle:
    Routes are THIN. They extract data from the request, call the identity
    or habitat service, and pick the status code. Link rules and credential
    rules live in the services.
"""
