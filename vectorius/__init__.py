"""Vectorius backend: persona tokens, structured extraction and chat attachments"""

__version__ = "0.9.0"
