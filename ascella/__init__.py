"""Ascella uploader - capture screenshots and upload them to an Ascella host."""

__version__ = "0.4.0"

APP_NAME = "Ascella"
APP_AUTHOR = "Ascella"
