"""
MELONOTES Backend — API Routes Package
========================================

Route Inventory:
    - auth.py:       POST /api/auth/login, GET /api/auth/verify
    - taxonomy.py:   /api/categories, /api/tags
    - notes.py:      /api/notes, /api/notes/{id}
    - solutions.py:  solutions, steps, code snippets and scripts of a note
    - uploads.py:    POST /api/upload, GET /uploads/{filename}
    - health.py:     GET /, GET /health

Routes stay thin: parse the request, call a repository or service, shape
the response. Errors propagate to the handlers registered in main.py.
"""
