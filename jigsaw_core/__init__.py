"""
Jigsaw core Python package.

This package contains the data structures and pure-logic helpers behind the
jigsaw assembly engine, kept free of rendering and input concerns so the web
API, the CLI and the tests can all drive the same session objects.
Modules:
- grid.py: GridShape
- edges.py / boundary.py: edge classification and piece outlines
- piece.py: Piece
- placement.py: PuzzleBoard (placement rules, completion)
- session.py: SessionController (lifecycle, events)
- scoring.py, store.py, codec.py: collaborators (score, save/resume, JSON)
"""
