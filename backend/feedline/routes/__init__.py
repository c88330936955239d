# Routes package init
"""
Feedline Backend - API Routes Package
=======================================

Route Inventory:
    - graphql.py: GET/POST /graphql     (single operation endpoint)
    - images.py:  GET /images/{name}    (stored uploads)
    - health.py:  GET /health           (data store check)

Routes stay thin: they hand the request to an injected collaborator
from app.state and return its response.
"""
