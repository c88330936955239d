# Services package init
"""
Feedline Backend - Services Layer
===================================

Service Inventory:
    - UploadAcceptor / ImageStorage: the `image` attachment and its bucket
    - AuthGate: bearer token → Identity
"""
