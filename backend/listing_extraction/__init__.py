"""
Listing extraction service.

Turns raw scraped listing content into validated, confidence-scored property
records with a language model, or passes through UI specifications when the
model returns those instead.
"""

__version__ = "0.1.0"
