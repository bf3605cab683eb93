"""
w3gallery - Photo gallery served straight from an object-storage bucket

A gallery whose posts, captions and profile live as objects in one bucket:
- Posts stored as ``posts/<index>/photo.<ext>`` and ``caption.md``
- Gallery state kept in a single ``metadata.json`` document
- Google Cloud Storage backend with anonymous public reads
- Page fragments routed into a Streamlit shell
"""

__version__ = "0.1.0"
__author__ = "w3gallery"
__description__ = "Photo gallery served straight from an object-storage bucket"
