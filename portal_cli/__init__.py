"""Portal CLI — form controller and command-line front end for the project portal."""

__version__ = "1.0.0"
