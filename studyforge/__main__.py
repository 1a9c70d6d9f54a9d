# studyforge/__main__.py
"""
Entry point for `python -m studyforge`.

Delegates to the typer CLI.
"""

from studyforge.cli import app

if __name__ == "__main__":
    app()
