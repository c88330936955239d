# Gateway package init
"""
Feedline Backend - GraphQL Execution Gateway
==============================================

Modules:
    - context.py:  ExecutionContext (identity, upload, data store) + requires_auth
    - executor.py: ExecutionGateway, one operation per request
    - results.py:  Success / Failure
    - errors.py:   Error normalizer and JSON transport adapter
    - schema.py:   Default schema and root resolvers
    - graphiql.py: Browser console page
"""
