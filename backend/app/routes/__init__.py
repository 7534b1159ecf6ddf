"""
Waterfall Manager Backend — API Routes Package
===============================================

Route Inventory:
    - lifecycle.py: POST /api/lifecycle/transition
                    GET  /api/lifecycle/phase/{record_id}
                    GET  /api/lifecycle/project/{project_id}
    - projects.py:  POST /api/projects
                    GET  /api/projects
                    GET  /api/projects/{project_id}
    - health.py:    GET  /health
    - deps.py:      bearer-token identity dependency

Handlers stay thin: resolve the identity, call a service, shape the response.
"""
