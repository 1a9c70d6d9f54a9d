# studyforge/__init__.py
"""
studyforge: turn photographed document pages into study items.

Page images are pushed through a vision/language inference service by the
capture queue; the generation orchestrator turns the extracted text into
flashcards and related item kinds.
"""

__version__ = "0.3.0"
