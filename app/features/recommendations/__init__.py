"""
Nonprofit recommendation feature package.

Keeps every layer of the article -> nonprofit recommendation flow
co-located: domain models, knowledge tables, pipeline stages, service
wiring and the API router.
"""
