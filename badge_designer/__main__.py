"""
Module entrypoint for `python -m badge_designer`.

Opens a template JSON file, renders it against the default sample data
and shows it in a QGraphicsView:
    python -m badge_designer path/to/template.json
"""
from badge_designer.app import main

if __name__ == "__main__":
    main()
