"""
Feedline Backend - Application Package
========================================

HTTP entry point of the Feedline social backend.

Layers:
    ┌─────────────────────────────────────┐
    │  Middleware preamble + Routes        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  RequestPipeline                     │  ← upload → auth → execute → respond
    ├─────────────────────────────────────┤
    │  Services / Gateway                  │  ← UploadAcceptor, AuthGate, ExecutionGateway
    ├─────────────────────────────────────┤
    │  Database (async SQLAlchemy engine)  │
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
