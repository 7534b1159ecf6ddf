"""
Waterfall Manager Backend — Services Layer
===========================================

Service Inventory:
    - auth_service:      bearer token → Identity (user id, email, role)
    - authorization:     role × operation permission table
    - lifecycle_service: phase transitions and the append-only phase ledger
    - project_service:   create / fetch / list projects
"""
