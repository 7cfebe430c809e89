"""
Zoo Registry API: Services Layer
=================================

What:  Business logic between routes (HTTP) and the document store.

Service Inventory:
    - IdentityService: registration, login, authorization, password lifecycle
    - HabitatService:  zoos, animals and the two-sided link between them

The two services never import each other; routes compose them.
"""
