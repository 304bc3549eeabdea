"""
roamline CLI entrypoint.

Executed via:
  python -m roamline
"""

from roamline.cli.app import app

if __name__ == "__main__":
    app()
